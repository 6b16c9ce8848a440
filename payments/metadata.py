"""
Состав заказа, который хранится в Payment.metadata.

При оформлении заказа он собирается из проверенных данных формы
(OrderMetadata.to_dict), при выдаче билетов читается обратно
и проверяется заново (OrderMetadata.from_dict): JSON в базе мог быть
изменён вручную или записан старой версией кода.
"""
import json
from dataclasses import asdict, dataclass, field


class MalformedOrderMetadata(ValueError):
    pass


@dataclass(frozen=True)
class OrderLine:
    ticket_tier_id: int
    quantity: int
    attendee_name: str
    attendee_email: str
    attendee_phone: str = ''

    @property
    def is_complete(self) -> bool:
        return bool(self.attendee_name.strip() and self.attendee_email.strip())


@dataclass(frozen=True)
class PaymentBreakdown:
    ticket_subtotal: int
    gateway_fee: int
    total_amount: int
    organizer_amount: int
    platform_amount: int


@dataclass(frozen=True)
class OrderMetadata:
    tickets: list[OrderLine]
    event: dict = field(default_factory=dict)
    payment_breakdown: PaymentBreakdown | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw) -> 'OrderMetadata':
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as e:
                raise MalformedOrderMetadata(f"metadata is not valid JSON: {e}") from e
        if not isinstance(raw, dict):
            raise MalformedOrderMetadata("metadata must be an object")

        items = raw.get('tickets')
        if not isinstance(items, list) or not items:
            raise MalformedOrderMetadata("metadata has no ticket lines")

        lines = []
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                raise MalformedOrderMetadata(f"ticket line {i} is not an object")
            try:
                tier_id = int(item['ticket_tier_id'])
                quantity = int(item['quantity'])
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedOrderMetadata(f"ticket line {i}: bad tier or quantity") from e
            if quantity < 1:
                raise MalformedOrderMetadata(f"ticket line {i}: quantity must be positive")
            lines.append(OrderLine(
                ticket_tier_id=tier_id,
                quantity=quantity,
                attendee_name=str(item.get('attendee_name') or ''),
                attendee_email=str(item.get('attendee_email') or ''),
                attendee_phone=str(item.get('attendee_phone') or ''),
            ))

        breakdown = None
        if isinstance(raw.get('payment_breakdown'), dict):
            try:
                breakdown = PaymentBreakdown(**{
                    k: int(raw['payment_breakdown'][k]) for k in PaymentBreakdown.__dataclass_fields__
                })
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedOrderMetadata("payment_breakdown is incomplete") from e

        event = raw.get('event') if isinstance(raw.get('event'), dict) else {}
        return cls(tickets=lines, event=event, payment_breakdown=breakdown)
