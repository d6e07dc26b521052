from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Invoice Tracker"
    LOG_LEVEL: str = "INFO"

    # Local key-value storage
    STORAGE_PATH: str = "data/local_storage.json"
    STORAGE_KEY: str = "invoice_tracker_invoices"
    STORAGE_QUOTA_BYTES: int = 5 * 1024 * 1024

    # Exports
    EXPORT_FILE_PREFIX: str = "invoices"
    EXPORT_DATE_FORMAT: str = "%d/%m/%Y"
    CURRENCY_SYMBOL: str = "$"
    THOUSANDS_SEPARATOR: str = "."

    # Dashboard
    DEFAULT_PERIOD: str = "last-quarter"
    TOP_CLIENTS_LIMIT: int = 5

    class Config:
        case_sensitive = True
        env_prefix = "INVOICE_TRACKER_"

settings = Settings()
