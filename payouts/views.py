import logging

from django.core.cache import cache
from django.core.paginator import Paginator
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from core.decorators import admin_required, role_required
from core.utils import format_amount, read_json
from payments import paystack
from users.models import User

from .forms import BankAccountForm, BulkActionForm, WithdrawalForm
from .models import Payout
from .services import (
    PayoutError, approve_payout, bulk_process, organizer_earnings, reject_payout,
    request_withdrawal, verify_bank_account,
)

logger = logging.getLogger('payouts')

organizer_required = role_required(User.Role.ORGANIZER)

BANKS_CACHE_KEY = 'paystack:banks'
BANKS_CACHE_TTL = 60 * 60 * 24


def payout_payload(p: Payout, with_organizer: bool = False) -> dict:
    data = {
        "id": p.pk,
        "amount": p.amount,
        "amount_display": format_amount(p.amount),
        "status": p.status,
        "bank_account": p.bank_account,
        "bank_code": p.bank_code,
        "account_name": p.account_name,
        "reason": p.reason,
        "transfer_reference": p.transfer_reference,
        "failure_reason": p.failure_reason,
        "processed_at": p.processed_at.isoformat() if p.processed_at else None,
        "created_at": p.created_at.isoformat(),
    }
    if with_organizer:
        data["organizer"] = {"id": p.organizer_id, "name": p.organizer.display_name,
                             "email": p.organizer.email}
    return data


@organizer_required
@require_GET
def earnings(request):
    return JsonResponse(organizer_earnings(request.user))


@organizer_required
@require_GET
def banks(request):
    data = cache.get(BANKS_CACHE_KEY)
    if data is None:
        try:
            raw = paystack.list_banks()
        except paystack.PaystackError:
            return JsonResponse({"error": "Could not load banks"}, status=502)
        data = [{"name": b.get("name"), "code": b.get("code")} for b in raw if b.get("active", True)]
        cache.set(BANKS_CACHE_KEY, data, BANKS_CACHE_TTL)
    return JsonResponse({"banks": data})


@organizer_required
@require_POST
def verify_bank(request):
    form = BankAccountForm(read_json(request) or {})
    if not form.is_valid():
        return JsonResponse({"error": "Invalid input data", "errors": form.errors}, status=400)
    try:
        resolved = verify_bank_account(form.cleaned_data["account_number"], form.cleaned_data["bank_code"])
    except PayoutError as e:
        return JsonResponse({"error": str(e)}, status=e.status)
    return JsonResponse({"account_name": resolved.get("account_name"),
                         "account_number": resolved.get("account_number")})


@organizer_required
@require_POST
def withdraw(request):
    data = read_json(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)
    form = WithdrawalForm(data)
    if not form.is_valid():
        return JsonResponse({"error": "Invalid input data", "errors": form.errors}, status=400)

    cd = form.cleaned_data
    try:
        payout = request_withdrawal(
            request.user,
            amount=cd["amount"],
            account_number=cd["account_number"],
            bank_code=cd["bank_code"],
            account_name=cd["account_name"],
            reason=cd.get("reason") or "",
        )
    except PayoutError as e:
        return JsonResponse({"error": str(e)}, status=e.status)
    return JsonResponse({"message": "Withdrawal request submitted successfully",
                         "withdrawal": payout_payload(payout)}, status=201)


@organizer_required
@require_GET
def withdrawals(request):
    qs = Payout.objects.filter(organizer=request.user)
    return JsonResponse({"results": [payout_payload(p) for p in qs]})


# ---------- администратор ----------

@admin_required
@require_GET
def admin_withdrawals(request):
    qs = Payout.objects.select_related('organizer')
    status = (request.GET.get("status") or "").upper()
    if status in Payout.Status.values:
        qs = qs.filter(status=status)
    page = Paginator(qs, 50).get_page(request.GET.get("page"))
    return JsonResponse({
        "results": [payout_payload(p, with_organizer=True) for p in page.object_list],
        "page": page.number,
        "num_pages": page.paginator.num_pages,
        "count": page.paginator.count,
    })


@admin_required
@require_POST
def admin_withdrawal_action(request, pk: int, action: str):
    data = read_json(request) or {}
    try:
        if action == "approve":
            payout = approve_payout(pk, request.user)
        elif action == "reject":
            payout = reject_payout(pk, request.user, str(data.get("reason") or ""))
        else:
            return JsonResponse({"error": "Invalid action"}, status=400)
    except PayoutError as e:
        return JsonResponse({"error": str(e)}, status=e.status)
    return JsonResponse({"message": f"Withdrawal {action}d successfully",
                         "withdrawal": payout_payload(payout, with_organizer=True)})


@admin_required
@require_POST
def admin_bulk_action(request, action: str):
    form = BulkActionForm(read_json(request) or {})
    if not form.is_valid():
        return JsonResponse({"error": "Invalid input data", "errors": form.errors}, status=400)
    try:
        results = bulk_process(action, form.cleaned_data["ids"], request.user,
                               form.cleaned_data.get("reason") or "")
    except PayoutError as e:
        return JsonResponse({"error": str(e)}, status=e.status)
    return JsonResponse({"message": f"{len(results)} withdrawals processed", "results": results})
