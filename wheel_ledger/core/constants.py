# Configuration keys
CONFIG_DATABASE_URL = "CONFIG_DATABASE_URL"
CONFIG_FINNHUB_TOKEN = "CONFIG_FINNHUB_TOKEN"
CONFIG_TIMEZONE = "CONFIG_TIMEZONE"
CONFIG_API_HOST = "CONFIG_API_HOST"
CONFIG_API_PORT = "CONFIG_API_PORT"
CONFIG_QUOTE_TIMEOUT = "CONFIG_QUOTE_TIMEOUT"
CONFIG_DEBUG = "CONFIG_DEBUG"

DEFAULT_DATABASE_URL = "sqlite:///data/wheel_ledger.db"
DEFAULT_TIMEZONE = "US/Pacific"
DEFAULT_QUOTE_TIMEOUT = 10

# Strategies
STRATEGY_CSP = "CSP"
STRATEGY_CC = "CC"

# Event status
STATUS_OPEN = "Open"
STATUS_ROLLED = "Rolled"
STATUS_CLOSED = "Closed"
STATUS_ASSIGNED = "Assigned"
VALID_STATUSES = [STATUS_OPEN, STATUS_ROLLED, STATUS_CLOSED, STATUS_ASSIGNED]

# Movement types
MOVEMENT_OPEN = "open"
MOVEMENT_ROLL = "roll"
MOVEMENT_CLOSE = "close"
MOVEMENT_ASSIGNMENT = "assignment"
VALID_MOVEMENTS = [MOVEMENT_OPEN, MOVEMENT_ROLL, MOVEMENT_CLOSE, MOVEMENT_ASSIGNMENT]

# Shares per option contract
CONTRACT_MULTIPLIER = 100

# Command events
FIELD_TYPE = "type"
FIELD_PATH = "path"
FIELD_TEXT = "text"
EVENT_TYPE_EXPORT_HISTORY = "EVENT_TYPE_EXPORT_HISTORY"
EVENT_TYPE_IMPORT_HISTORY = "EVENT_TYPE_IMPORT_HISTORY"
EVENT_TYPE_PORTFOLIO_REPORT = "EVENT_TYPE_PORTFOLIO_REPORT"
EVENT_TYPE_OPEN_POSITIONS_REPORT = "EVENT_TYPE_OPEN_POSITIONS_REPORT"

# CSV interchange columns, in file order
CSV_COLUMNS = [
    "fecha_evento",
    "ticker",
    "estrategia",
    "contratos",
    "strike",
    "precio_apertura",
    "precio_actual",
    "prima_recibida",
    "comision",
    "costo_cierre",
    "fecha_inicio",
    "fecha_vencimiento",
    "fecha_cierre",
    "estado",
    "tipo_movimiento",
    "cadena_id",
    "es_posicion_actual",
    "nota",
]

# CSV column -> record field
CSV_FIELD_MAP = {
    "fecha_evento": "event_date",
    "ticker": "ticker",
    "estrategia": "strategy",
    "contratos": "contracts",
    "strike": "strike",
    "precio_apertura": "opening_price",
    "precio_actual": "current_price",
    "prima_recibida": "premium_received",
    "comision": "commission",
    "costo_cierre": "closing_cost",
    "fecha_inicio": "start_date",
    "fecha_vencimiento": "expiration_date",
    "fecha_cierre": "close_date",
    "estado": "status",
    "tipo_movimiento": "movement_type",
    "cadena_id": "chain_id",
    "es_posicion_actual": "is_current_position",
    "nota": "note",
}

FINNHUB_QUOTE_URL = "https://finnhub.io/api/v1/quote"
