"""OTD Entregas - API de logística de veículos."""
