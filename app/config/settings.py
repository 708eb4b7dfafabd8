"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_REQUEST_TIMEOUT = 5


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets", file=sys.stderr)
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}", file=sys.stderr)

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass(frozen=True)
class ProvisioningConfig:
    """Immutable runtime configuration, loaded once per process."""
    keycloak_url: str
    realm: str
    token: str

    # Mode
    demo_mode: bool = False

    # Admin API context path ("/auth" on legacy WildFly-based Keycloak)
    admin_path_prefix: str = "/auth"

    # New account defaults
    email_domain: str = "utp.edu.pe1"
    target_group: str = "UTP Estudiantes"
    initial_password: str = "1234"
    temporary_password: bool = False
    first_name: str = "PruebaDEV"
    last_name: str = "PruebaDEV"
    locale: str = "en"

    # Execution
    max_attempts: int = 3
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    workers: int = 1

    # Row source
    user_code_column: str = "codUser"

    @property
    def admin_base_url(self) -> str:
        """Base URL that Admin API paths are appended to."""
        prefix = self.admin_path_prefix.strip("/")
        base = self.keycloak_url.rstrip("/")
        return f"{base}/{prefix}" if prefix else base


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False, override: Optional[str] = None) -> str:
    """Get explicit override, environment variable or demo default, in that order."""
    value = override or os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}", file=sys.stderr)
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _get_int(var_name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise RuntimeError(f"Environment variable {var_name} must be >= {minimum}, got {value}")
    return value


def _get_float(var_name: str, default: float) -> float:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"Environment variable {var_name} must be positive, got {value}")
    return value


def load_settings(keycloak_url: Optional[str] = None, realm: Optional[str] = None) -> ProvisioningConfig:
    """Load provisioning settings from environment and /run/secrets.

    Args:
        keycloak_url: Takes precedence over KEYCLOAK_URL (e.g. from --kc-url)
        realm: Takes precedence over KEYCLOAK_REALM (e.g. from --realm)
    """
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    keycloak_url = _get_or_generate(
        "KEYCLOAK_URL", demo_default="http://127.0.0.1:8080", demo_mode=demo_mode, override=keycloak_url
    )
    realm = realm or os.environ.get("KEYCLOAK_REALM", "demo")

    # Bearer token: /run/secrets > environment > demo default
    token = _load_secret_from_file("keycloak_token", "KEYCLOAK_TOKEN")
    if not token:
        token = _get_or_generate("KEYCLOAK_TOKEN", demo_default="demo-token", demo_mode=demo_mode)

    initial_password = _load_secret_from_file("provision_initial_password", "PROVISION_INITIAL_PASSWORD") or "1234"

    config = ProvisioningConfig(
        keycloak_url=keycloak_url,
        realm=realm,
        token=token,
        demo_mode=demo_mode,
        admin_path_prefix=os.environ.get("KEYCLOAK_ADMIN_PATH_PREFIX", "/auth"),
        email_domain=os.environ.get("PROVISION_EMAIL_DOMAIN", "utp.edu.pe1"),
        target_group=os.environ.get("PROVISION_TARGET_GROUP", "UTP Estudiantes"),
        initial_password=initial_password,
        temporary_password=os.environ.get("PROVISION_TEMPORARY_PASSWORD", "false").lower() == "true",
        first_name=os.environ.get("PROVISION_FIRST_NAME", "PruebaDEV"),
        last_name=os.environ.get("PROVISION_LAST_NAME", "PruebaDEV"),
        locale=os.environ.get("PROVISION_LOCALE", "en"),
        max_attempts=_get_int("PROVISION_MAX_ATTEMPTS", 3),
        request_timeout=_get_float("PROVISION_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        workers=_get_int("PROVISION_WORKERS", 1),
        user_code_column=os.environ.get("PROVISION_USER_CODE_COLUMN", "codUser"),
    )

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; realm={realm}; base_url={config.admin_base_url}", file=sys.stderr)

    if demo_mode:
        print("[settings] WARNING: Demo credentials in use. Do not deploy with these defaults.", file=sys.stderr)
    if config.initial_password == "1234" and not config.temporary_password:
        print("[settings] WARNING: Default non-temporary initial password in use.", file=sys.stderr)

    return config
