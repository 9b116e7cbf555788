import os


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/foodontracks_db")

# Application Metadata
PROJECT_NAME = "FoodOnTracks Order Service"
VERSION = "1.0.0"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Order processing
# Fault injection lets test environments force a rollback after stock is reserved.
# Never enable in production.
ENABLE_FAULT_INJECTION = _flag("ENABLE_FAULT_INJECTION")
DELIVERY_ETA_MINUTES = int(os.getenv("DELIVERY_ETA_MINUTES", 30)) # Added on top of the slowest item's prep time
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", 10)) # Default alert level for new menu items
ORDER_NUMBER_MAX_ATTEMPTS = int(os.getenv("ORDER_NUMBER_MAX_ATTEMPTS", 3))

# Outbox Poller Configuration (Notification worker)
POLLING_INTERVAL = int(os.getenv("POLLING_INTERVAL", 1)) # Poller checks for new events every N seconds
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", 5)) # Max retries for an event
BATCH_SIZE = int(os.getenv("BATCH_SIZE", 50)) # How many events to fetch per poll
