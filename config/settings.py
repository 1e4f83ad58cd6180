from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Core
    ENVIRONMENT: str = Field(default="production")
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json | text (local runs)
    FIRESTORE_PROJECT_ID: str = Field(default="")
    STORAGE_BUCKET: str = Field(default="")  # Firebase Storage bucket for application images

    # Operator/admin auth (Firebase ID token)
    OPERATOR_AUTH_AUDIENCE: str = Field(default="")  # Firebase project id
    OPERATOR_ALLOWED_EMAILS: str = Field(default="")  # comma-separated

    # Callable functions
    FUNCTIONS_REGION: str = Field(default="europe-west3")
    FUNCTIONS_BASE_URL: str = Field(default="")  # overrides https://{region}-{project}.cloudfunctions.net
    FUNCTIONS_TIMEOUT_SEC: float = Field(default=30.0)

    # Search forwarding (Typesense)
    SEARCH_HOST: str = Field(default="")
    SEARCH_API_KEY: str = Field(default="")
    SEARCH_ORDERS_COLLECTION: str = Field(default="orders")
    SEARCH_QUERY_BY: str = Field(default="productName,brandModel,buyerName,sellerName,orderId")
    SEARCH_TIMEOUT_SEC: float = Field(default=10.0)

    # Moderation
    DEFAULT_REJECTION_REASON: str = Field(default="Application did not meet listing guidelines.")
    LISTENER_NATIVE_QUERY: bool = Field(default=True)  # false = scan whole collection (legacy docs without status)

    # Broadcast
    NOTIFICATION_BATCH_SIZE: int = Field(default=500)  # Firestore batch write limit


settings = Settings()
