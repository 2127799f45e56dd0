"""Request bodies for the HTTP API. Amounts are integer base units."""

from pydantic import BaseModel, Field

from scrollpay.models import ConversionDirection


class ConvertRequest(BaseModel):
    amount: int = Field(ge=0)
    direction: ConversionDirection


class PaymentRequest(BaseModel):
    merchant: str
    amount: int = Field(default=0, ge=0)
    use_native: bool = False
    value: int = Field(default=0, ge=0)


class GoodsPaymentRequest(BaseModel):
    merchant: str
    amount: int = Field(ge=0)
    order_ref: str


class WithdrawalRequestBody(BaseModel):
    amount: int = Field(ge=0)


class CompleteWithdrawalBody(BaseModel):
    as_native: bool = False


class ResolveDisputeBody(BaseModel):
    merchant_favor: bool


class SubscriptionRequest(BaseModel):
    merchant: str
    amount: int = Field(ge=0)
    interval: int = Field(ge=0)


class ProcessSubscriptionsBody(BaseModel):
    limit: int | None = Field(default=None, ge=1)


class FallbackPriceBody(BaseModel):
    price: int = Field(ge=0)


class MintBody(BaseModel):
    to: str
    amount: int = Field(gt=0)


class ApproveBody(BaseModel):
    spender: str
    amount: int = Field(ge=0)
