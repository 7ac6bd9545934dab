import typing as t
import os
from dotenv import load_dotenv
from core.utils.str import parse_env_var_to_list, parse_env_var_to_bool

dotenv_path = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), ".env")
load_dotenv(dotenv_path=dotenv_path)

templates_dir = os.path.join(os.path.dirname(dotenv_path), "templates")

class EnvHandler:
    def __init__(self):
        """Add new variables below"""
        self.state = {
            "app_env": self.get("APP_ENV", "development"),
            "site_url": self.get("SITE_URL").rstrip("/"),
            "site_name": self.get("SITE_NAME", "Joana Promise Mhone"),
            "author": self.get("AUTHOR_NAME", "Joana Promise Mhone"),
            "sender": self.get("SENDER_EMAIL"),
            "sender_name": self.get("SENDER_NAME", "Blog Newsletter"),
            "log_level": self.get("LOG_LEVEL", "INFO"),
        }
        self.mongo = {
            "uri": self.get("MONGO_URI"),
            "db": self.get("DATABASE_NAME", "portfolio"),
        }
        self.mailjet = {
            "api_key": self.get("MAILJET_API_KEY"),
            "secret_key": self.get("MAILJET_SECRET_KEY"),
        }
        self.token = {
            "algorithm": self.get("TOKEN_ALGORITHM", "HS256"),
            "secret": self.get("UNSUBSCRIBE_SECRET_KEY"),
            "lifetime_days": self.get("UNSUBSCRIBE_TOKEN_DAYS", 30, cast=int),
            "anonymize": self.get("ANONYMIZE_ON_UNSUBSCRIBE", False, cast=parse_env_var_to_bool),
        }
        self.auth = {
            "admin_key": self.get("ADMIN_API_KEY"),
            "allow_headers": parse_env_var_to_list(self.get("ALLOW_HEADERS", "Content-Type|X-Admin-Key")),
            "allow_origins": parse_env_var_to_list(self.get("ALLOW_ORIGINS", "")),
        }
        self.limits = {
            "enabled": self.get("RATELIMIT_ENABLED", True, cast=parse_env_var_to_bool),
        }
        if self.token["secret"] == self.auth["admin_key"]:
            raise ValueError("UNSUBSCRIBE_SECRET_KEY must be a dedicated secret, not the admin key")

    def get(self, key: str, default: t.Union[t.Any, None] = None, cast: t.Union[t.Callable, None] = None) -> t.Any:
        """
        Fetch an environment variable with optional casting and default fallback.
        - (key) Name of the environment variable.
        - (default) Default value if the variable is not found.
        - `cast`: Callable to cast the value into (e.g., int, float, parse_env_var_to_bool).
        - `returns`: The value of the environment variable.
        - `raises`: `KeyError` if the variable is not found and no default is provided.
        """
        value = os.getenv(key, default)
        if value is None:
            raise KeyError(f"Missing required environment variable: {key}")
        if cast:
            try:
                value = cast(value)
            except ValueError as e:
                raise ValueError(f"Error casting environment variable {key} to {cast}: {e}")

        return value

env = EnvHandler()
