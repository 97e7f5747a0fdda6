'''
Holds all the configurations
'''
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """
    Manages application configuration using environment variables.
    """
    # Application Metadata
    APP_NAME: str = "eTuition Backend"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "The backend API for the eTuition tutoring marketplace."
    TEST_MODE: bool = False

    # Database URL
    DATABASE_URL_PROD: str = ""
    DATABASE_URL_TEST: str = "sqlite+aiosqlite:///./etuition_test.db"
    AUTO_CREATE_TABLES: bool = False
    @property
    def database_url(self) -> str:
        """
        Dynamically returns the correct database URL based on the test_mode flag.
        """
        if self.TEST_MODE:
            return self.DATABASE_URL_TEST
        return self.DATABASE_URL_PROD

    # JWT Settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # CORS
    BACKEND_CORS_ORIGINS: list[str] = []

    # Payment gateway (Stripe Checkout)
    STRIPE_SECRET_KEY: str = ""
    STRIPE_API_BASE: str = "https://api.stripe.com/v1"
    STRIPE_TIMEOUT_SECONDS: float = 15.0
    PAYMENT_CURRENCY: str = "usd"
    CLIENT_DOMAIN: str = "http://localhost:5173"

    class Config:
        env_file = ".env" # automatically loads the .env

# Create a single, importable instance of the settings
settings = Settings()
