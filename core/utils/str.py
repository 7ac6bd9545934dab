import re
import string
import random
import hashlib

def random_id():
    characters = string.ascii_uppercase + string.digits
    return ''.join(random.choices(characters, k=8))

rate_limit_warnings = [
    "Whoa there! Take a breath and try again in a minute.",
    "Easy, tiger! You're clicking faster than the inbox can keep up.",
    "Too many requests from your side of the internet. Try again shortly.",
    "The newsletter gremlins need a short break. Please retry in a bit.",
    "HTTP 429: even firewalls need a coffee break.",
    "Slow down, hacker. The rate limiter noticed you.",
]

def get_random_rate_limit_warning(warnings = rate_limit_warnings):
    return random.choice(warnings)

def parse_env_var_to_list(env_var: str, separator: str = "|") -> list[str]:
    """Parse a pipe-separated string from an environment variable into a list of strings."""
    if not env_var:
        return []
    return [item.strip() for item in env_var.split(separator) if item.strip()]

def parse_env_var_to_bool(env_var) -> bool:
    if isinstance(env_var, bool):
        return env_var
    return str(env_var).strip().lower() in ("1", "true", "yes", "on")

def email_digest(email: str) -> str:
    """SHA-256 of the normalised address, kept after anonymisation."""
    return hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()

_TAG_RE = re.compile(r"<[^>]*>")

def strip_html(html: str) -> str:
    return _TAG_RE.sub("", html or "")

def make_excerpt(content: str, length: int = 160) -> str:
    return " ".join(strip_html(content).split())[:length]
