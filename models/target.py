from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class ReplaceRule(BaseModel):
    pattern: str = Field(..., description="Regular expression to search for")
    replace_with: str = Field("", description="Replacement, supports \\1 and \\g<name>")


class WebhookConfig(BaseModel):
    url: str = Field(..., description="Webhook endpoint")
    method: str = Field("POST", description="HTTP method used for the webhook")
    header: Dict[str, str] = Field(default_factory=dict)
    useragent: Optional[str] = None

    @field_validator("method")
    @classmethod
    def upper_method(cls, v: str) -> str:
        return v.upper()


# --- Stage 1: structural extraction ---


class PassThrough(BaseModel):
    kind: Literal["none"] = "none"


class PatternExtraction(BaseModel):
    """Keeps the first capture group of a regex match."""

    kind: Literal["pattern"] = "pattern"
    pattern: str


class BodyExtraction(BaseModel):
    """Keeps the rendered <body> element of an HTML document."""

    kind: Literal["body"] = "body"


class SelectorExtraction(BaseModel):
    """Keeps the first element matching a CSS selector."""

    kind: Literal["selector"] = "selector"
    selector: str


Extraction = Annotated[
    Union[PassThrough, PatternExtraction, BodyExtraction, SelectorExtraction],
    Field(discriminator="kind"),
]


# --- Stage 2: structured-data reshaping ---


class NoReshape(BaseModel):
    kind: Literal["none"] = "none"


class JQReshape(BaseModel):
    """Runs a jq program over the JSON body."""

    kind: Literal["jq"] = "jq"
    query: str


class FeedReshape(BaseModel):
    """Flattens an RSS/Atom feed into labeled text."""

    kind: Literal["feed"] = "feed"


class HTMLToText(BaseModel):
    """Strips markup, scripts and styles."""

    kind: Literal["html2text"] = "html2text"


Reshape = Annotated[
    Union[NoReshape, JQReshape, FeedReshape, HTMLToText],
    Field(discriminator="kind"),
]


class Target(BaseModel):
    name: str = Field(..., min_length=1, description="Name of the watched resource")
    url: str = Field(..., description="URL to fetch")
    description: str = ""
    method: str = Field("GET", description="HTTP method")
    body: Optional[str] = Field(None, description="Optional request body")
    header: Dict[str, str] = Field(default_factory=dict, description="Header overrides")
    useragent: Optional[str] = Field(None, description="User-Agent override for this target")
    interval: Optional[int] = Field(
        None, gt=0, description="Seconds between cycles (defaults to SCRAPE_INTERVAL)"
    )
    disabled: bool = False

    # Content transformation
    extraction: Extraction = Field(default_factory=PassThrough)
    reshape: Reshape = Field(default_factory=NoReshape)
    replaces: List[ReplaceRule] = Field(default_factory=list)
    remove_empty_lines: bool = False
    trim_whitespace: bool = False

    # Retry / soft error tuning
    retry_on_match: List[str] = Field(default_factory=list)
    skip_soft_error_patterns: bool = False

    # Notifications
    no_error_notify_on_status_code: List[int] = Field(default_factory=list)
    webhooks: List[WebhookConfig] = Field(default_factory=list)

    @field_validator("method")
    @classmethod
    def upper_method(cls, v: str) -> str:
        return (v or "GET").upper()

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"url must start with http:// or https://: {v}")
        return v

    @property
    def identity(self):
        """The natural key used by the artifact store."""
        return (self.name, self.url)
