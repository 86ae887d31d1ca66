from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from servicebox.domain.enums import DuplicatePolicy


class ContainerSettings(BaseSettings):
    """Container behaviour switches.

    Values are read from ``SERVICEBOX_*`` environment variables when not
    passed explicitly, e.g. ``SERVICEBOX_DUPLICATE_POLICY=replace``.
    """

    model_config = SettingsConfigDict(env_prefix="SERVICEBOX_", case_sensitive=False, extra="ignore")

    duplicate_policy: DuplicatePolicy = Field(
        default=DuplicatePolicy.FAIL,
        description="Reject or replace duplicate registrations.",
    )
    warn_on_captive_dependency: bool = Field(
        default=True,
        description="Log a warning when a singleton captures a transient dependency.",
    )
    validate_contracts: bool = Field(
        default=True,
        description="Check that instances resolved for class keys are instances of that class.",
    )
    track_transient_disposables: bool = Field(
        default=True,
        description=(
            "Dispose transient instances with the scope that built them, or with the container "
            "when a singleton captured them. Transients resolved directly from the container belong to the caller."
        ),
    )
