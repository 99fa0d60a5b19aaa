from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Supplier(BaseModel):
    """
    A vendor on the supplier master list.  Purchase orders name their vendor
    by free text; aliases hold the trading names that text may use instead.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    contact: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    aliases: list[str] = Field(default_factory=list)

    @field_validator("aliases", mode="before")
    @classmethod
    def _split_aliases(cls, value):
        # "A|B" strings come from CSV rows and form fields
        if isinstance(value, str):
            return [a.strip() for a in value.split("|") if a.strip()]
        return value or []

    @property
    def all_names(self) -> list[str]:
        return [self.name, *self.aliases]

    def is_known_as(self, vendor: str) -> bool:
        """Case-insensitive exact match on the name or any alias."""
        wanted = vendor.strip().lower()
        return any(n.lower() == wanted for n in self.all_names)
