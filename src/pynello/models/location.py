"""Location and address models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pynello.models._base import NelloBaseModel, safe_str


class Address(NelloBaseModel):
    """Postal address of a location as returned by ``/locations/``."""

    street: str = ""
    number: str = ""
    zip: str = ""
    city: str = ""
    country: str = ""
    state: str | None = None

    @field_validator("street", "number", "zip", "city", "country", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return safe_str(value)

    @property
    def street_name(self) -> str:
        return self.street.strip()

    @property
    def full_street(self) -> str:
        return f"{self.street_name} {self.number}"

    @property
    def full_address(self) -> str:
        """``"<street> <number>, <zip> <city>"``."""
        return f"{self.full_street}, {self.zip} {self.city}"

    def published_fields(self) -> dict[str, str]:
        """Address fields as mirrored into the state tree.

        ``number`` is replaced by ``streetNumber`` and the composed
        ``street`` and ``address`` fields are added.
        """
        fields: dict[str, str] = {
            "city": self.city,
            "country": self.country,
            "zip": self.zip,
        }
        if self.state is not None:
            fields["state"] = self.state
        fields["streetName"] = self.street_name
        fields["streetNumber"] = self.number
        fields["street"] = self.full_street
        fields["address"] = self.full_address
        return fields


class Location(NelloBaseModel):
    """A physical site with one nello lock."""

    location_id: str = Field(validation_alias=AliasChoices("location_id", "locationId", "id"))
    address: Address = Field(default_factory=Address)

    @field_validator("location_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return safe_str(value)
