from pydantic import BaseModel

from eventhub.model.report import VerificationReport
from eventhub.model.user import SessionContext


class SignedURLResponse(BaseModel):
    url: str
    expires_in_minutes: int = 15


class PaymentProofRequest(BaseModel):
    filename: str
    data: str


class PaymentProofResponse(BaseModel):
    path: str


class StorageStatusResponse(BaseModel):
    bucket: str
    connected: bool


class LogoutResponse(BaseModel):
    redirect: str
    session: SessionContext


class VerificationResponse(BaseModel):
    exit_code: int
    summary: str
    report: VerificationReport
