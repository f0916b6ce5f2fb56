"""Modelos SQLAlchemy: cadastros, veículos, coletas, transportes, checkpoints, usuários e prestação de contas."""
import enum

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, ForeignKey, Text, Numeric, Float, JSON,
    Enum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from .database import Base


def utcnow() -> datetime:
    """Agora em UTC, sem tzinfo (colunas TIMESTAMP sem fuso)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum_column(enum_cls, name: str):
    # Grava o valor ("em_estoque"), não o nome do membro
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda e: [m.value for m in e],
        validate_strings=True,
    )


class VehicleStatus(str, enum.Enum):
    PRE_ESTOQUE = "pre_estoque"
    EM_ESTOQUE = "em_estoque"
    EM_TRANSITO = "em_transito"
    ENTREGUE = "entregue"


class CollectStatus(str, enum.Enum):
    EM_TRANSITO = "em_transito"
    FINALIZADA = "finalizada"
    CANCELADO = "cancelado"


class TransportStatus(str, enum.Enum):
    PENDENTE = "pendente"
    AGUARDANDO_SAIDA = "aguardando_saida"
    EM_TRANSITO = "em_transito"
    ENTREGUE = "entregue"
    CANCELADO = "cancelado"


class CheckpointStatus(str, enum.Enum):
    PENDENTE = "pendente"
    ALCANCADO = "alcancado"
    CONCLUIDO = "concluido"


class NotificationStatus(str, enum.Enum):
    PENDENTE = "pendente"
    ACEITO = "aceito"
    RECUSADO = "recusado"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    OPERADOR = "operador"
    VISUALIZADOR = "visualizador"
    MOTORISTA = "motorista"
    PORTARIA = "portaria"


class DriverModality(str, enum.Enum):
    PJ = "pj"
    CLT = "clt"
    AGREGADO = "agregado"


class SettlementStatus(str, enum.Enum):
    PENDENTE = "pendente"
    ENVIADO = "enviado"
    DEVOLVIDO = "devolvido"
    APROVADO = "aprovado"


class ExpenseType(str, enum.Enum):
    PEDAGIO = "pedagio"
    COMBUSTIVEL = "combustivel"
    ALIMENTACAO = "alimentacao"
    HOSPEDAGEM = "hospedagem"
    MANUTENCAO = "manutencao"
    MULTA = "multa"
    ESTACIONAMENTO = "estacionamento"
    LAVAGEM = "lavagem"
    OUTROS = "outros"


# --- Cadastros ---
class Driver(Base):
    """Motorista (PJ, CLT ou agregado)."""

    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    cpf = Column(String(14), unique=True, nullable=False, index=True)
    phone = Column(String(20), nullable=False)
    email = Column(String(255))
    modality = Column(_enum_column(DriverModality, "driver_modality"), nullable=False)
    cnh_type = Column(String(5), nullable=False)
    city = Column(String(120))
    state = Column(String(2))
    is_apto = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class Manufacturer(Base):
    """Montadora (origem das coletas)."""

    __tablename__ = "manufacturers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    cnpj = Column(String(20))
    city = Column(String(120))
    state = Column(String(2))
    phone = Column(String(20))
    email = Column(String(255))
    contact_name = Column(String(255))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class Yard(Base):
    """Pátio onde os veículos ficam em estoque."""

    __tablename__ = "yards"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    address = Column(String(500))
    city = Column(String(120))
    state = Column(String(2))
    latitude = Column(Float)
    longitude = Column(Float)
    max_vehicles = Column(Integer)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class Client(Base):
    """Cliente dono dos veículos; daily_cost é a diária de pátio usada no faturamento."""

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    cnpj = Column(String(20))
    city = Column(String(120))
    state = Column(String(2))
    phone = Column(String(20))
    email = Column(String(255))
    contact_name = Column(String(255))
    daily_cost = Column(Numeric(10, 2), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    delivery_locations = relationship("DeliveryLocation", back_populates="client", passive_deletes=True)


class DeliveryLocation(Base):
    """Local de entrega de um cliente (destino do transporte)."""

    __tablename__ = "delivery_locations"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=False)
    city = Column(String(120), nullable=False)
    state = Column(String(2), nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    responsible_name = Column(String(255))
    responsible_phone = Column(String(20))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    client = relationship("Client", back_populates="delivery_locations")


# --- Estoque ---
class Vehicle(Base):
    """Veículo identificado pelo chassi. O status acompanha coleta, pátio e transporte."""

    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    chassi = Column(String(50), unique=True, nullable=False, index=True)
    status = Column(
        _enum_column(VehicleStatus, "vehicle_status"),
        default=VehicleStatus.PRE_ESTOQUE,
        nullable=False,
        index=True,
    )
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    yard_id = Column(Integer, ForeignKey("yards.id", ondelete="SET NULL"), nullable=True)
    manufacturer_id = Column(Integer, ForeignKey("manufacturers.id", ondelete="SET NULL"), nullable=True)
    color = Column(String(50))
    notes = Column(Text)
    collect_date_time = Column(DateTime)
    yard_entry_date_time = Column(DateTime)  # última entrada em estoque (base do faturamento)
    dispatch_date_time = Column(DateTime)
    delivery_date_time = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    client = relationship("Client")
    yard = relationship("Yard")


# --- Coletas ---
class Collect(Base):
    """
    Coleta: retirada do veículo na montadora e entrega no pátio.
    - check-in: motorista retira o veículo na montadora.
    - check-out: chegada ao pátio (ou autorização de entrada na portaria); veículo passa a em_estoque.
    """

    __tablename__ = "collects"

    id = Column(Integer, primary_key=True, index=True)
    vehicle_chassi = Column(String(50), ForeignKey("vehicles.chassi", ondelete="CASCADE"), nullable=False, index=True)
    manufacturer_id = Column(Integer, ForeignKey("manufacturers.id"), nullable=False)
    yard_id = Column(Integer, ForeignKey("yards.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True)
    status = Column(
        _enum_column(CollectStatus, "collect_status"),
        default=CollectStatus.EM_TRANSITO,
        nullable=False,
        index=True,
    )
    collect_date = Column(DateTime)
    notes = Column(Text)

    checkin_date_time = Column(DateTime)
    checkin_latitude = Column(Float)
    checkin_longitude = Column(Float)
    checkin_photos = Column(JSON)  # URLs das fotos
    checkin_notes = Column(Text)

    checkout_date_time = Column(DateTime)
    checkout_latitude = Column(Float)
    checkout_longitude = Column(Float)
    checkout_photos = Column(JSON)
    checkout_notes = Column(Text)
    checkout_approved_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow)


# --- Transportes ---
class Transport(Base):
    """
    Transporte: entrega do veículo do pátio ao local do cliente.
    checkin_date_time é o horário de saída do pátio; checkout_date_time, o da entrega.
    """

    __tablename__ = "transports"

    id = Column(Integer, primary_key=True, index=True)
    request_number = Column(String(20), unique=True, nullable=False, index=True)
    vehicle_chassi = Column(String(50), ForeignKey("vehicles.chassi"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    origin_yard_id = Column(Integer, ForeignKey("yards.id"), nullable=False)
    delivery_location_id = Column(Integer, ForeignKey("delivery_locations.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True)
    status = Column(
        _enum_column(TransportStatus, "transport_status"),
        default=TransportStatus.PENDENTE,
        nullable=False,
        index=True,
    )
    delivery_date = Column(Date)
    notes = Column(Text)

    checkin_date_time = Column(DateTime)
    checkin_latitude = Column(Float)
    checkin_longitude = Column(Float)
    checkin_photos = Column(JSON)
    checkin_notes = Column(Text)

    checkout_date_time = Column(DateTime)
    checkout_latitude = Column(Float)
    checkout_longitude = Column(Float)
    checkout_photos = Column(JSON)
    checkout_notes = Column(Text)

    created_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    driver_assigned_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    driver_assigned_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)

    checkpoints = relationship(
        "TransportCheckpoint",
        back_populates="transport",
        order_by="TransportCheckpoint.order_index",
        cascade="all, delete-orphan",
    )


class DriverNotification(Base):
    """Convite de viagem enviado a um motorista: saída do pátio para um local de entrega numa data."""

    __tablename__ = "driver_notifications"

    id = Column(Integer, primary_key=True, index=True)
    yard_id = Column(Integer, ForeignKey("yards.id", ondelete="CASCADE"), nullable=False)
    delivery_location_id = Column(Integer, ForeignKey("delivery_locations.id", ondelete="CASCADE"), nullable=False)
    departure_date = Column(Date, nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        _enum_column(NotificationStatus, "driver_notification_status"),
        default=NotificationStatus.PENDENTE,
        nullable=False,
    )
    responded_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)

    driver = relationship("Driver")


class RequestCounter(Base):
    """Contador do número de solicitação (OTD00001, OTD00002, ...)."""

    __tablename__ = "request_counter"

    COUNTER_ID = "transport_counter"

    id = Column(String(50), primary_key=True, default=COUNTER_ID)
    last_number = Column(Integer, nullable=False, default=0)


# --- Checkpoints ---
class Checkpoint(Base):
    """Ponto de passagem reutilizável (catálogo)."""

    __tablename__ = "checkpoints"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    address = Column(String(500))
    latitude = Column(Float)
    longitude = Column(Float)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)


class TransportCheckpoint(Base):
    """Checkpoint atribuído a um transporte, na ordem de order_index."""

    __tablename__ = "transport_checkpoints"
    __table_args__ = (UniqueConstraint("transport_id", "order_index", name="uq_transport_checkpoint_order"),)

    id = Column(Integer, primary_key=True, index=True)
    transport_id = Column(Integer, ForeignKey("transports.id", ondelete="CASCADE"), nullable=False, index=True)
    checkpoint_id = Column(Integer, ForeignKey("checkpoints.id", ondelete="CASCADE"), nullable=False)
    order_index = Column(Integer, nullable=False)
    status = Column(
        _enum_column(CheckpointStatus, "checkpoint_status"),
        default=CheckpointStatus.PENDENTE,
        nullable=False,
    )
    reached_at = Column(DateTime)

    transport = relationship("Transport", back_populates="checkpoints")
    checkpoint = relationship("Checkpoint")


# --- Usuários ---
class User(Base):
    """Usuário do sistema. refresh_token_version muda a cada refresh/logout."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    first_name = Column(String(100))
    last_name = Column(String(100))
    role = Column(_enum_column(UserRole, "user_role"), default=UserRole.VISUALIZADOR, nullable=False)
    refresh_token_version = Column(Integer, nullable=False, default=0)
    last_login = Column(DateTime)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# --- Prestação de contas ---
class ExpenseSettlement(Base):
    """Prestação de contas do motorista para um transporte."""

    __tablename__ = "expense_settlements"

    id = Column(Integer, primary_key=True, index=True)
    transport_id = Column(Integer, ForeignKey("transports.id", ondelete="CASCADE"), unique=True, nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False)
    status = Column(
        _enum_column(SettlementStatus, "settlement_status"),
        default=SettlementStatus.PENDENTE,
        nullable=False,
        index=True,
    )
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    return_reason = Column(Text)
    submitted_at = Column(DateTime)
    reviewed_at = Column(DateTime)
    approved_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)

    items = relationship(
        "ExpenseSettlementItem",
        back_populates="settlement",
        order_by="ExpenseSettlementItem.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ExpenseSettlementItem(Base):
    __tablename__ = "expense_settlement_items"

    id = Column(Integer, primary_key=True, index=True)
    settlement_id = Column(Integer, ForeignKey("expense_settlements.id", ondelete="CASCADE"), nullable=False, index=True)
    expense_type = Column(_enum_column(ExpenseType, "expense_type"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text)
    receipt_photo = Column(String(512))
    created_at = Column(DateTime, default=utcnow)

    settlement = relationship("ExpenseSettlement", back_populates="items")
