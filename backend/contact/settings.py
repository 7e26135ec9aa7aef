"""Contact form mail delivery configuration via environment variables."""

from typing import Self

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ContactSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CONTACT_", env_file=".env", extra="ignore", populate_by_name=True)

    smtp_host: str = Field(default="smtp.gmail.com", min_length=1)
    smtp_port: int = Field(default=587, ge=1, le=65535)

    # The mailbox account doubles as the default recipient: contact mail is
    # sent from the account to itself.
    smtp_username: str = Field(
        default="",
        validation_alias=AliasChoices("CONTACT_SMTP_USERNAME", "EMAIL"),
    )
    smtp_password: str = Field(
        default="",
        validation_alias=AliasChoices("CONTACT_SMTP_PASSWORD", "PASSWORD"),
    )
    recipient: str = ""
    use_starttls: bool = True
    timeout_seconds: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _default_recipient(self) -> Self:
        if not self.recipient:
            self.recipient = self.smtp_username
        return self

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_username and self.recipient)
