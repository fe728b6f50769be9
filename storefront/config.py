import os


def _env_list(name, default):
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [x.strip() for x in raw.split(",") if x.strip()]


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    ENV = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    CORS_ORIGINS = _env_list("CORS_ORIGINS", ["*"])

    # pricing
    BASE_CURRENCY = os.getenv("BASE_CURRENCY", "PKR").upper()
    SUPPORTED_CURRENCIES = [c.upper() for c in _env_list("SUPPORTED_CURRENCIES", ["PKR", "USD"])]
    # "fallback": ineligible coupon -> best promotion + reason on the quote
    # "reject":   ineligible coupon -> 422
    COUPON_REJECTION_POLICY = os.getenv("COUPON_REJECTION_POLICY", "fallback").lower()
    CATALOG_RETRY_AFTER_SECONDS = int(os.getenv("CATALOG_RETRY_AFTER_SECONDS", "5"))

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config.setdefault(
                "SQLALCHEMY_DATABASE_URI",
                f"sqlite:///{os.path.join(app.instance_path, 'storefront.db')}",
            )
        else:
            app.config.setdefault("SQLALCHEMY_DATABASE_URI", os.getenv("DATABASE_URL"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "WARNING"
