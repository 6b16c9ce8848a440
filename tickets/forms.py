from django import forms
from django.conf import settings
from django.core.validators import MaxValueValidator, RegexValidator

# +2348012345678 или 08012345678
nigerian_phone = RegexValidator(
    regex=r'^(\+234|0)[789][01]\d{8}$',
    message="Please enter a valid Nigerian phone number",
)


class TicketLineForm(forms.Form):
    """Одна строка заказа: тариф, количество и данные участника."""
    ticket_tier_id = forms.IntegerField(min_value=1)
    quantity = forms.IntegerField(min_value=1)
    attendee_name = forms.CharField(max_length=100)
    attendee_email = forms.EmailField(max_length=255)
    attendee_phone = forms.CharField(max_length=20, required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # лимит берётся из настроек при создании формы
        self.fields['quantity'].validators.append(MaxValueValidator(settings.MAX_TICKETS_PER_TIER))

    def clean_attendee_email(self):
        return self.cleaned_data['attendee_email'].strip().lower()

    def clean_attendee_phone(self):
        phone = (self.cleaned_data.get('attendee_phone') or '').replace(' ', '')
        if phone:
            nigerian_phone(phone)
        return phone


def clean_ticket_lines(raw):
    """
    Проверяет список строк заказа.
    Возвращает (lines, errors): список cleaned_data и словарь {индекс: ошибки}.
    """
    if not isinstance(raw, list) or not raw:
        return [], {"tickets": ["At least one ticket is required"]}

    lines, errors = [], {}
    for i, item in enumerate(raw):
        form = TicketLineForm(item if isinstance(item, dict) else {})
        if form.is_valid():
            lines.append(form.cleaned_data)
        else:
            errors[i] = form.errors
    return lines, errors
