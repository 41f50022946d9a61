# Upstream credential resolution + provider format checks.
# Checks run before any upstream call so a malformed key never costs quota.

from pydantic import SecretStr

from productshot.exceptions import InvalidCredentialError, MissingCredentialError

GEMINI_KEY_PREFIX = "AIza"
OPENAI_KEY_PREFIX = "sk-"


def resolve_credential(server_value: SecretStr, client_value: str | None) -> str | None:
    """Server-side key first, then the client-supplied one."""
    server = server_value.get_secret_value().strip()
    if server:
        return server
    client = (client_value or "").strip()
    return client or None


def require_gemini_key(credential: str | None) -> str:
    if not credential:
        raise MissingCredentialError(
            "Please set your API key in Settings or add GEMINI_API_KEY env variable"
        )
    if not credential.startswith(GEMINI_KEY_PREFIX):
        raise InvalidCredentialError("Invalid API key format. Gemini keys start with AIza...")
    return credential


def require_openai_key(credential: str | None, *, oauth: bool = False) -> str:
    """OAuth access tokens have no fixed prefix; only API keys are format-checked."""
    if not credential:
        raise MissingCredentialError("Please set your OpenAI API key in Settings")
    if not oauth and not credential.startswith(OPENAI_KEY_PREFIX):
        raise InvalidCredentialError(
            "Please check your OpenAI API key in Settings (should start with sk-)"
        )
    return credential
