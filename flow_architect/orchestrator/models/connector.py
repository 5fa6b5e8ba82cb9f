"""Connector models for the connector catalog.

These Pydantic models describe catalog entries: a connector's display
name, its category, which pipeline roles it may play, and the credential
fields the user has to supply for it.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ConnectorCategory(str, Enum):
    """Connector categories.

    Declaration order is the categorization priority order: a name matching
    several category rules resolves to the first one declared here.
    """

    DATABASES = "Databases"
    FILE_SYSTEMS = "File Systems"
    STREAMING = "Streaming"
    CRM = "CRM"
    ECOMMERCE = "E-Commerce"
    MARKETING_ADVERTISING = "Marketing & Advertising"
    VECTOR_DATABASES = "Vector Databases"
    LLMS = "LLMs"
    DATA_AS_A_SERVICE = "Data as a Service"
    CYBERSECURITY = "Cybersecurity"
    GENERIC_APIS = "Generic APIs"
    OTHER = "Other"


class ConnectorRole(str, Enum):
    """Role a connector plays at an end of the pipeline."""

    SOURCE = "source"
    DESTINATION = "destination"


class ConnectorRoles(BaseModel):
    """Which pipeline ends a connector may be placed at."""

    model_config = ConfigDict(frozen=True)

    source: bool = True
    destination: bool = True


class ConnectorCredentials(BaseModel):
    """Credential and configuration fields for a connector.

    Attributes:
        mandatory: Fields that must be filled before the node is complete.
        optional: Fields the user may fill or skip.
    """

    model_config = ConfigDict(frozen=True)

    mandatory: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()

    @property
    def all_fields(self) -> tuple[str, ...]:
        return self.mandatory + self.optional


class Connector(BaseModel):
    """A named, categorized integration endpoint.

    Attributes:
        name: Display name, unique across the catalog.
        category: Category derived from the name (or declared by the catalog).
        roles: Which pipeline ends the connector supports.
        credentials: Credential fields required/optional for configuration.
        custom: True when the user confirmed a name that is not in the catalog.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Catalog-wide unique display name")
    category: ConnectorCategory = Field(..., description="Connector category")
    roles: ConnectorRoles = Field(default_factory=ConnectorRoles)
    credentials: ConnectorCredentials = Field(default_factory=ConnectorCredentials)
    custom: bool = Field(default=False, description="Not part of the catalog")

    def supports(self, role: ConnectorRole) -> bool:
        """Return True if the connector may be used in the given role."""
        if role == ConnectorRole.SOURCE:
            return self.roles.source
        return self.roles.destination

    @property
    def supported_roles(self) -> list[ConnectorRole]:
        return [role for role in ConnectorRole if self.supports(role)]


class BuiltinTransform(BaseModel):
    """A named transform step with no configurable fields."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    description: str = ""


class DummyTransformMarker(BaseModel):
    """Placeholder transform: a transform step exists, details unspecified.

    Never carries a connector or configurable fields.
    """

    model_config = ConfigDict(frozen=True)

    name: str = "Dummy Transform"
