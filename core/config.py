from decouple import config, Csv

class Settings:
    # Database Configuration
    DATABASE_URL: str = config("DATABASE_URL", default="sqlite:///./admin_backoffice.db")
    DATABASE_ECHO: bool = config("DATABASE_ECHO", default=False, cast=bool)

    # Security Configuration
    SECRET_KEY: str = config("SECRET_KEY", default="your-secret-key-here-change-in-production")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = config("ACCESS_TOKEN_EXPIRE_MINUTES", default=30, cast=int)

    # CORS Configuration
    CORS_ORIGINS: list = config(
        "CORS_ORIGINS",
        default="http://localhost:3000,http://127.0.0.1:3000",
        cast=Csv()
    )

    # Category Management
    CATEGORY_PAGE_SIZE: int = config("CATEGORY_PAGE_SIZE", default=50, cast=int)
    CATEGORY_MAX_PAGE_SIZE: int = config("CATEGORY_MAX_PAGE_SIZE", default=200, cast=int)
    # Walk the whole ancestor chain on re-parenting instead of only rejecting self-parenting
    CATEGORY_STRICT_CYCLE_CHECK: bool = config("CATEGORY_STRICT_CYCLE_CHECK", default=False, cast=bool)

    # Audit Configuration
    AUDIT_LOG_ENABLED: bool = config("AUDIT_LOG_ENABLED", default=True, cast=bool)

    # Environment
    ENVIRONMENT: str = config("ENVIRONMENT", default="development")
    DEBUG: bool = config("DEBUG", default=True, cast=bool)

    # Logging
    LOG_LEVEL: str = config("LOG_LEVEL", default="INFO")

settings = Settings()
