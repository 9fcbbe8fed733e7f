"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

import string

from pydantic import BaseModel, field_validator, model_validator

# MP3 formats of the Deezer media service; the ID3 tag only suits MP3 streams
QUALITY_MAP = {
    "MP3_128": {"name": "MP3 128kbps", "ext": "mp3"},
    "MP3_320": {"name": "MP3 320kbps", "ext": "mp3"},
}

DEFAULT_OUTPUT_TEMPLATE = "{artist} - {title}.{ext}"
TEMPLATE_FIELDS = frozenset({"artist", "title", "ext"})

SONGLINK_API_URL = "https://api.song.link/v1-alpha.1/links"
DEEZER_GATEWAY_URL = "https://www.deezer.com/ajax/gw-light.php"
DEEZER_MEDIA_URL = "https://media.deezer.com/v1/get_url"

SECRET_KEY_LENGTH = 16


def template_fields(template: str) -> list[tuple[str, str, str]]:
    """
    Returns ``(field, conversion, format_spec)`` for every placeholder.

    Raises:
        ValueError: If the braces in the template are unbalanced.
    """
    return [
        (field, conversion or "", spec or "")
        for _, field, spec, conversion in string.Formatter().parse(template)
        if field is not None
    ]


def get_quality_info(quality: str) -> dict[str, str]:
    """Gets all information for a given quality tier from the central map."""
    return QUALITY_MAP.get(quality, {"name": "Unknown", "ext": "mp3"})


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    # Authentication
    arl: str = ""
    secret: str = ""

    # Resolution & Download Settings
    quality: str = "MP3_128"
    user_country: str = "US"
    embed_cover: bool = True
    output_template: str = DEFAULT_OUTPUT_TEMPLATE

    # Timeouts (seconds)
    auth_timeout: float = 20.0
    resolve_timeout: float = 10.0
    cover_timeout: float = 10.0
    stream_read_timeout: float = 30.0

    # Endpoints
    songlink_url: str = SONGLINK_API_URL
    deezer_gateway_url: str = DEEZER_GATEWAY_URL
    deezer_media_url: str = DEEZER_MEDIA_URL

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("quality")
    @classmethod
    def validate_quality(cls, v: str) -> str:
        v = v.upper()
        if v not in QUALITY_MAP:
            raise ValueError(
                f"Quality must be one of {', '.join(QUALITY_MAP)}, but got: {v}"
            )
        return v

    @field_validator("user_country")
    @classmethod
    def validate_country(cls, v: str) -> str:
        if len(v) != 2 or not v.isalpha():
            raise ValueError(f"User country must be a 2-letter code, but got: {v}")
        return v.upper()

    @field_validator("auth_timeout", "resolve_timeout", "cover_timeout", "stream_read_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive.")
        return v

    @field_validator("output_template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        """Validates the output file name template."""
        if not v:
            raise ValueError("Output template cannot be empty.")
        if ".." in v or v.startswith(("/", "\\")):
            raise ValueError(
                "Output template cannot contain relative '..' or absolute paths."
            )
        placeholders = template_fields(v)
        if any(conversion or spec for _, conversion, spec in placeholders):
            raise ValueError("Output template placeholders cannot carry format specs.")
        fields = {field for field, _, _ in placeholders}
        if unknown := fields - TEMPLATE_FIELDS:
            raise ValueError(
                f"Unknown output template placeholder(s): {', '.join(sorted(unknown))}. "
                f"Allowed: {', '.join(sorted(TEMPLATE_FIELDS))}."
            )
        if "title" not in fields:
            raise ValueError("Output template must contain {title}.")
        return v

    @model_validator(mode="after")
    def validate_credentials(self) -> "AppConfig":
        """The stripe key is derived from the first 16 bytes of the secret."""
        if self.secret and len(self.secret.encode("utf-8")) < SECRET_KEY_LENGTH:
            raise ValueError(
                f"Secret must be at least {SECRET_KEY_LENGTH} bytes long."
            )
        return self

    @property
    def has_deezer_credentials(self) -> bool:
        return bool(self.arl and self.secret)

    @property
    def file_extension(self) -> str:
        return get_quality_info(self.quality)["ext"]

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return set(cls.model_fields)
