from datetime import datetime

from pydantic import BaseModel


class InitializePaymentRequest(BaseModel):
    booking_id: int


class InitializePaymentResponse(BaseModel):
    authorization_url: str
    access_code: str | None = None
    reference: str


class PaymentOut(BaseModel):
    id: int
    booking_id: int
    amount: float
    currency: str
    gateway_reference: str
    status: str
    transaction_id: str | None = None
    anomaly: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class VerifyPaymentResponse(BaseModel):
    reference: str
    payment_status: str
    booking_status: str
    booking_payment_status: str
    gateway_status: str
    amount: float | None = None
    currency: str | None = None
    paid_at: datetime | None = None
    channel: str | None = None
    gateway_response: str | None = None


class PaymentStatusResponse(BaseModel):
    booking_reference: str
    status: str
    payment_status: str
    payment_reference: str | None = None
    paid_at: datetime | None = None
    payment_anomaly: str | None = None
    payment: PaymentOut | None = None


class WebhookAck(BaseModel):
    status: str
    detail: str | None = None
