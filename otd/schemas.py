"""Schemas Pydantic para request/response. JSON em camelCase; entrada aceita também snake_case."""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import date, datetime, timezone
from decimal import Decimal

from .models import (
    CheckpointStatus, CollectStatus, DriverModality, ExpenseType, NotificationStatus, SettlementStatus,
    TransportStatus, UserRole, VehicleStatus,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Horário com fuso vira UTC sem tzinfo; sem fuso já é tratado como UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class MessageResponse(CamelModel):
    message: str


# --- Autenticação / Usuários ---
class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserResponse(CamelModel):
    id: int
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class LoginResponse(TokenPair):
    user: UserResponse


class UserCreate(CamelModel):
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6)
    email: Optional[str] = Field(None, max_length=255)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole = UserRole.VISUALIZADOR


class UserUpdate(CamelModel):
    password: Optional[str] = Field(None, min_length=6)
    email: Optional[str] = Field(None, max_length=255)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


# --- Motoristas ---
class DriverCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=255)
    cpf: str = Field(..., min_length=11, max_length=14)
    phone: str = Field(..., min_length=10, max_length=20)
    email: Optional[str] = None
    modality: DriverModality
    cnh_type: str = Field(..., min_length=1, max_length=5)
    city: Optional[str] = None
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    is_apto: bool = False
    is_active: bool = True


class DriverUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = Field(None, min_length=10, max_length=20)
    email: Optional[str] = None
    modality: Optional[DriverModality] = None
    cnh_type: Optional[str] = Field(None, min_length=1, max_length=5)
    city: Optional[str] = None
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    is_apto: Optional[bool] = None
    is_active: Optional[bool] = None


class DriverResponse(DriverCreate):
    id: int
    created_at: datetime


# --- Notificações de motorista ---
class NotifyDriversRequest(CamelModel):
    yard_id: int
    delivery_location_id: int
    departure_date: date


class DriverNotificationResponse(CamelModel):
    id: int
    yard_id: int
    delivery_location_id: int
    departure_date: date
    driver_id: int
    status: NotificationStatus
    responded_at: Optional[datetime] = None
    created_at: datetime
    driver: Optional[DriverResponse] = None


# --- Montadoras ---
class ManufacturerCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=255)
    cnpj: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_name: Optional[str] = None
    is_active: bool = True


class ManufacturerUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    cnpj: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_name: Optional[str] = None
    is_active: Optional[bool] = None


class ManufacturerResponse(ManufacturerCreate):
    id: int
    created_at: datetime


# --- Pátios ---
class YardCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=255)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    max_vehicles: Optional[int] = Field(None, ge=0)
    is_active: bool = True


class YardUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    max_vehicles: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class YardResponse(YardCreate):
    id: int
    created_at: datetime


# --- Clientes e locais de entrega ---
class ClientCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=255)
    cnpj: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_name: Optional[str] = None
    daily_cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_active: bool = True


class ClientUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    cnpj: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_name: Optional[str] = None
    daily_cost: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_active: Optional[bool] = None


class ClientResponse(CamelModel):
    id: int
    name: str
    cnpj: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    contact_name: Optional[str] = None
    daily_cost: Optional[float] = None
    is_active: bool
    created_at: datetime


class DeliveryLocationCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=255)
    address: str = Field(..., min_length=5, max_length=500)
    city: str = Field(..., min_length=2)
    state: str = Field(..., min_length=2, max_length=2)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    responsible_name: Optional[str] = None
    responsible_phone: Optional[str] = None
    is_active: bool = True


class DeliveryLocationUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    address: Optional[str] = Field(None, min_length=5, max_length=500)
    city: Optional[str] = Field(None, min_length=2)
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    responsible_name: Optional[str] = None
    responsible_phone: Optional[str] = None
    is_active: Optional[bool] = None


class DeliveryLocationResponse(DeliveryLocationCreate):
    id: int
    client_id: int
    created_at: datetime


# --- Checkpoints (catálogo) ---
class CheckpointCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=255)
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_active: bool = True


class CheckpointUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_active: Optional[bool] = None


class CheckpointResponse(CheckpointCreate):
    id: int
    created_at: datetime


# --- Veículos ---
class VehicleCreate(CamelModel):
    chassi: str = Field(..., min_length=17, max_length=50)
    client_id: Optional[int] = None
    yard_id: Optional[int] = None
    manufacturer_id: Optional[int] = None
    color: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("chassi")
    @classmethod
    def _normalize_chassi(cls, v: str) -> str:
        return v.strip().upper()


class VehicleUpdate(CamelModel):
    """Status não é editável aqui: muda apenas pelas operações de coleta/transporte/portaria."""

    client_id: Optional[int] = None
    yard_id: Optional[int] = None
    manufacturer_id: Optional[int] = None
    color: Optional[str] = None
    notes: Optional[str] = None


class VehicleResponse(CamelModel):
    id: int
    chassi: str
    status: VehicleStatus
    client_id: Optional[int] = None
    yard_id: Optional[int] = None
    manufacturer_id: Optional[int] = None
    color: Optional[str] = None
    notes: Optional[str] = None
    collect_date_time: Optional[datetime] = None
    yard_entry_date_time: Optional[datetime] = None
    dispatch_date_time: Optional[datetime] = None
    delivery_date_time: Optional[datetime] = None
    created_at: datetime


# --- Check-in / check-out (coleta e transporte) ---
class CheckEvent(CamelModel):
    """Registro de check-in ou check-out: horário, geolocalização, fotos e observações."""

    date_time: Optional[datetime] = None  # ausente = agora
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    photos: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    _utc_date_time = field_validator("date_time")(to_utc_naive)


# --- Coletas ---
class CollectCreate(CamelModel):
    vehicle_chassi: str = Field(..., min_length=17, max_length=50)
    manufacturer_id: int
    yard_id: int
    driver_id: Optional[int] = None
    collect_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("vehicle_chassi")
    @classmethod
    def _normalize_chassi(cls, v: str) -> str:
        return v.strip().upper()

    _utc_collect_date = field_validator("collect_date")(to_utc_naive)


class CollectUpdate(CamelModel):
    driver_id: Optional[int] = None
    collect_date: Optional[datetime] = None
    notes: Optional[str] = None
    checkin: Optional[CheckEvent] = None
    checkout: Optional[CheckEvent] = None

    _utc_collect_date = field_validator("collect_date")(to_utc_naive)


class CollectResponse(CamelModel):
    id: int
    vehicle_chassi: str
    manufacturer_id: int
    yard_id: int
    driver_id: Optional[int] = None
    status: CollectStatus
    collect_date: Optional[datetime] = None
    notes: Optional[str] = None
    checkin_date_time: Optional[datetime] = None
    checkin_latitude: Optional[float] = None
    checkin_longitude: Optional[float] = None
    checkin_photos: Optional[List[str]] = None
    checkin_notes: Optional[str] = None
    checkout_date_time: Optional[datetime] = None
    checkout_latitude: Optional[float] = None
    checkout_longitude: Optional[float] = None
    checkout_photos: Optional[List[str]] = None
    checkout_notes: Optional[str] = None
    checkout_approved_by_id: Optional[int] = None
    created_at: datetime


# --- Transportes ---
class TransportCreate(CamelModel):
    vehicle_chassi: str = Field(..., min_length=17, max_length=50)
    client_id: int
    origin_yard_id: int
    delivery_location_id: int
    driver_id: Optional[int] = None
    delivery_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("vehicle_chassi")
    @classmethod
    def _normalize_chassi(cls, v: str) -> str:
        return v.strip().upper()


class TransportUpdate(CamelModel):
    driver_id: Optional[int] = None
    delivery_date: Optional[date] = None
    notes: Optional[str] = None


class TransportResponse(CamelModel):
    id: int
    request_number: str
    vehicle_chassi: str
    client_id: int
    origin_yard_id: int
    delivery_location_id: int
    driver_id: Optional[int] = None
    status: TransportStatus
    delivery_date: Optional[date] = None
    notes: Optional[str] = None
    checkin_date_time: Optional[datetime] = None
    checkin_latitude: Optional[float] = None
    checkin_longitude: Optional[float] = None
    checkin_photos: Optional[List[str]] = None
    checkin_notes: Optional[str] = None
    checkout_date_time: Optional[datetime] = None
    checkout_latitude: Optional[float] = None
    checkout_longitude: Optional[float] = None
    checkout_photos: Optional[List[str]] = None
    checkout_notes: Optional[str] = None
    created_by_user_id: Optional[int] = None
    driver_assigned_by_user_id: Optional[int] = None
    driver_assigned_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime


class AssignCheckpointsRequest(CamelModel):
    checkpoint_ids: List[int]


class CheckpointReachedRequest(CamelModel):
    finalized: bool = False


class TransportCheckpointResponse(CamelModel):
    id: int
    transport_id: int
    checkpoint_id: int
    order_index: int
    status: CheckpointStatus
    reached_at: Optional[datetime] = None
    name: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ProgressResponse(CamelModel):
    completed: int
    total: int
    percentage: int


class TransportTimelineResponse(CamelModel):
    transport: TransportResponse
    checkpoints: List[TransportCheckpointResponse]
    progress: ProgressResponse


# --- Relatórios ---
class VehicleBillingResponse(CamelModel):
    chassi: str
    client_id: Optional[int] = None
    client_name: str
    yard_id: Optional[int] = None
    yard_name: str
    entry_date: Optional[datetime] = None
    days_in_stock: int
    daily_cost: float
    total_cost: float


class ClientGroupResponse(CamelModel):
    client_id: Optional[int] = None
    client_name: str
    daily_cost: float
    vehicles: List[VehicleBillingResponse]
    total_days: int
    total_cost: float


class BillingSummaryResponse(CamelModel):
    total_vehicles: int
    total_days: int
    grand_total: float


class YardBillingResponse(CamelModel):
    client_groups: List[ClientGroupResponse]
    summary: BillingSummaryResponse


class DashboardStatsResponse(CamelModel):
    total_transports: int
    collects_in_transit: int
    vehicles_in_stock: int
    active_drivers: int
    transports_by_status: dict[str, int]


# --- Prestação de contas ---
class SettlementCreate(CamelModel):
    transport_id: int
    driver_id: Optional[int] = None


class SettlementItemCreate(CamelModel):
    expense_type: ExpenseType
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    description: Optional[str] = None
    receipt_photo: Optional[str] = None


class SettlementItemUpdate(CamelModel):
    expense_type: Optional[ExpenseType] = None
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    description: Optional[str] = None
    receipt_photo: Optional[str] = None


class SettlementItemResponse(CamelModel):
    id: int
    settlement_id: int
    expense_type: ExpenseType
    amount: float
    description: Optional[str] = None
    receipt_photo: Optional[str] = None
    created_at: datetime


class SettlementReturnRequest(CamelModel):
    return_reason: str = Field(..., min_length=1)


class SettlementResponse(CamelModel):
    id: int
    transport_id: int
    driver_id: int
    status: SettlementStatus
    total_amount: float
    return_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    items: List[SettlementItemResponse] = Field(default_factory=list)
