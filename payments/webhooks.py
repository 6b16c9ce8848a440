import logging

from payouts.services import reconcile_transfer

from .services import fulfill_payment

logger = logging.getLogger('payments')

TRANSFER_EVENTS = ('transfer.success', 'transfer.failed', 'transfer.reversed')


def handle_webhook_event(event: dict) -> str:
    """Разбор проверенного события шлюза. Неизвестные события игнорируются."""
    name = event.get('event') or ''
    data = event.get('data') or {}
    if not isinstance(data, dict):
        logger.warning("Webhook %s without data object", name)
        return 'ignored'

    if name == 'charge.success':
        # статуса в событии может не быть; если есть, принимаем только success
        if data.get('status') not in (None, 'success'):
            logger.info("Webhook charge.success with status %s ignored", data.get('status'))
            return 'ignored'
        reference = data.get('reference')
        if not reference:
            logger.warning("Webhook charge.success without reference")
            return 'ignored'
        return fulfill_payment(str(reference), data)

    if name in TRANSFER_EVENTS:
        return reconcile_transfer(name, data)

    logger.info("Webhook event %s ignored", name)
    return 'ignored'
