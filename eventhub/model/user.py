from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    PARTICIPANT = "participant"
    ORGANIZER = "organizer"
    ADMIN = "admin"


class CamelModel(BaseModel):
    # The frontend sends camelCase keys (firstName, lastName)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Profile(CamelModel):
    first_name: str | None = None
    last_name: str | None = None


class BaseUser(CamelModel):
    email: str = ""
    profile: Profile | None = None

    @property
    def display_name(self) -> str:
        if self.profile is not None and self.profile.first_name:
            return f"{self.profile.first_name} {self.profile.last_name or ''}".strip()
        local_part = self.email.split("@")[0]
        return local_part or "User"


class Participant(BaseUser):
    role: Literal["participant"] = "participant"


class Organizer(BaseUser):
    role: Literal["organizer"] = "organizer"


class Admin(BaseUser):
    role: Literal["admin"] = "admin"


User = Annotated[Union[Participant, Organizer, Admin], Field(discriminator="role")]


class SessionContext(CamelModel):
    user: User | None = None
    token: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.user is not None
