from pydantic import BaseModel, ConfigDict, Field, field_validator

_CONTROL_CHARS = frozenset(chr(c) for c in range(32)) - {"\n", "\r", "\t"}


class ContactRequest(BaseModel):
    """Body of POST /send-email."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=5000)

    @field_validator("name", "email", "subject")
    @classmethod
    def _single_line(cls, v: str) -> str:
        # These end up in mail headers or header-like lines.
        if "\n" in v or "\r" in v:
            raise ValueError("must be a single line")
        return v

    @field_validator("name", "email", "subject", "message")
    @classmethod
    def _no_control_chars(cls, v: str) -> str:
        if any(ch in _CONTROL_CHARS for ch in v):
            raise ValueError("must not contain control characters")
        return v
