from pydantic import BaseModel


PUBLIC_PRINCIPALS = frozenset({"allUsers", "allAuthenticatedUsers"})


class BucketMetadata(BaseModel):
    name: str
    location: str | None = None
    storage_class: str | None = None


class IamBinding(BaseModel):
    role: str
    members: list[str] = []

    @property
    def is_public(self) -> bool:
        return any(member in PUBLIC_PRINCIPALS for member in self.members)


class IamPolicy(BaseModel):
    bindings: list[IamBinding] = []

    def public_bindings(self) -> list[IamBinding]:
        """Bindings that grant a role to allUsers or allAuthenticatedUsers."""
        return [binding for binding in self.bindings if binding.is_public]

    @property
    def is_public(self) -> bool:
        return len(self.public_bindings()) > 0
