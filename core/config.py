"""Lead service configuration."""

from pydantic import BaseModel, Field


class LeadsConfig(BaseModel):
    """
    Runtime settings for lead management.

    Secrets (database URL, identity service key) live in Vault, not here.
    """

    display_timezone: str = Field(
        default="Asia/Kolkata",
        description="Timezone used to render calendar dates in exports",
    )
    history_window: int = Field(
        default=10,
        description="History entries shown with a lead's detail view",
        ge=1,
        le=50,
    )
    list_page_size: int = Field(
        default=10,
        description="Default page size for lead listings",
        ge=1,
        le=100,
    )
    max_import_bytes: int = Field(
        default=5 * 1024 * 1024,
        description="Largest accepted CSV upload",
        ge=1024,
    )
    max_import_rows: int = Field(
        default=5000,
        description="Most data rows accepted in one CSV upload",
        ge=1,
    )
    admin_bypass_enabled: bool = Field(
        default=False,
        description="Let administrators edit and delete leads they do not own",
    )
    export_filename_prefix: str = Field(
        default="buyers_export",
        pattern=r"^[A-Za-z0-9_-]+$",
    )
