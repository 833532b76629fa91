# models.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


# -------------------- records --------------------

class PublicUser(BaseModel):
    number: str
    nickname: str
    lastname: str
    photo: str


class User(BaseModel):
    number: str
    nickname: str = "User"
    lastname: str = ""
    photo: str = ""
    age: int = 0
    email: str = ""
    phone: str = ""
    birthday: str = ""
    # connection id of the live session; never serialized
    session_id: Optional[str] = Field(default=None, exclude=True)

    def profile(self) -> Dict[str, Any]:
        return self.model_dump()

    def public(self) -> PublicUser:
        return PublicUser(number=self.number, nickname=self.nickname,
                          lastname=self.lastname, photo=self.photo)


class Message(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    text: str
    timestamp: int

    def wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# -------------------- inbound websocket payloads --------------------

class Frame(BaseModel):
    event: str
    data: Any = None


class RegisterUser(BaseModel):
    # validated by the directory so malformed ids report InvalidIdentifier
    number: Any = None
    nickname: Optional[str] = None
    lastname: Optional[str] = None
    photo: Optional[str] = None
    age: Optional[int] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    birthday: Optional[str] = None

    def profile_defaults(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"number"})


class ProfileUpdate(BaseModel):
    nickname: Optional[str] = None
    lastname: Optional[str] = None
    photo: Optional[str] = None
    age: Optional[int] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    birthday: Optional[str] = None

    def present_fields(self) -> Dict[str, Any]:
        """Only the fields the client actually sent with a value."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class SignInDecision(BaseModel):
    requestId: str


class SendMessage(BaseModel):
    to: str
    text: str


class CallOffer(BaseModel):
    to: str
    offer: Any = None


class CallAnswer(BaseModel):
    to: str
    answer: Any = None


class IceCandidate(BaseModel):
    to: str
    candidate: Any = None


class CallEnd(BaseModel):
    to: str


# -------------------- HTTP payloads --------------------

class EncodeRequest(BaseModel):
    text: Optional[str] = None


class DecodeRequest(BaseModel):
    encoded: Optional[str] = None


class ChatHistory(BaseModel):
    targetNumber: str
    messages: List[Dict[str, Any]]
