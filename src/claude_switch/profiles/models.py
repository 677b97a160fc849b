"""data models for stored profiles and active-profile state."""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

UNKNOWN = "(unknown)"
PLACEHOLDER = "-"


class ClaudeModel(BaseModel):
    """
    mirrors a JSON object that claude itself reads and writes.

    keys are camelCase on disk. keys we don't model are kept so that a
    profile written back into claude's config loses nothing.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class OAuthCredentials(ClaudeModel):
    """the `claudeAiOauth` object from claude's credentials file."""
    access_token: str
    refresh_token: str
    expires_at: int  # ms since epoch
    scopes: List[str] = Field(default_factory=list)
    subscription_type: Optional[str] = None
    rate_limit_tier: Optional[str] = None


class OAuthAccount(ClaudeModel):
    """the `oauthAccount` object from ~/.claude.json. everything is best-effort."""
    account_uuid: Optional[str] = None
    email_address: Optional[str] = None
    organization_uuid: Optional[str] = None
    display_name: Optional[str] = None
    organization_role: Optional[str] = None
    organization_name: Optional[str] = None
    has_extra_usage_enabled: Optional[bool] = None


class OAuthProfile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["oauth"] = "oauth"
    credentials: OAuthCredentials
    account: OAuthAccount = Field(default_factory=OAuthAccount)

    @property
    def display_type(self) -> str:
        return "oauth"

    @property
    def display_email(self) -> str:
        return self.account.email_address or UNKNOWN

    @property
    def display_org(self) -> str:
        return self.account.organization_name or PLACEHOLDER

    @property
    def display_subscription(self) -> str:
        return self.credentials.subscription_type or PLACEHOLDER

    @property
    def expires_at(self) -> Optional[int]:
        return self.credentials.expires_at


class ApiKeyProfile(BaseModel):
    """a static API key. never expires as far as we're concerned."""
    model_config = ConfigDict(extra="forbid")

    type: Literal["api_key"] = "api_key"
    api_key: str
    label: Optional[str] = None

    @property
    def display_type(self) -> str:
        return "api_key"

    @property
    def display_email(self) -> str:
        return PLACEHOLDER

    @property
    def display_org(self) -> str:
        return PLACEHOLDER

    @property
    def display_subscription(self) -> str:
        return PLACEHOLDER

    @property
    def expires_at(self) -> Optional[int]:
        return None


Profile = Annotated[Union[OAuthProfile, ApiKeyProfile], Field(discriminator="type")]

_profile_adapter = TypeAdapter(Profile)


def parse_profile(data: bytes) -> Profile:
    """
    decode a stored profile.

    raises:
        pydantic.ValidationError: if the document is not valid JSON or
            doesn't match exactly one profile variant
    """
    return _profile_adapter.validate_json(data)


def dump_profile(profile: Profile) -> bytes:
    """encode a profile as pretty JSON, omitting absent optional fields."""
    return profile.model_dump_json(by_alias=True, exclude_none=True, indent=2).encode()


class ActiveState(BaseModel):
    """which profile was last synchronized into claude."""
    active_profile: Optional[str] = None

    def is_active(self, name: str) -> bool:
        return self.active_profile == name
