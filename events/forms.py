from django import forms

from .models import Event, TicketTier


class EventForm(forms.ModelForm):
    class Meta:
        model = Event
        fields = ["title", "category", "description", "event_type", "starts_at", "ends_at",
                  "location", "venue", "is_public", "max_attendees", "status"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # необязательные в API поля, значения по умолчанию подставляются в clean_*
        for name in ("event_type", "status"):
            self.fields[name].required = False

    def clean_title(self):
        return self.cleaned_data["title"].strip()

    def clean_event_type(self):
        return self.cleaned_data.get("event_type") or Event.EventType.PAID

    def clean_is_public(self):
        # поля нет в JSON, значит событие публичное
        if "is_public" not in self.data:
            return True
        return self.cleaned_data["is_public"]

    def clean_status(self):
        # организатор может только сохранить черновик или опубликовать
        status = self.cleaned_data.get("status") or Event.Status.DRAFT
        if status not in (Event.Status.DRAFT, Event.Status.ACTIVE):
            raise forms.ValidationError("Status must be DRAFT or ACTIVE.")
        return status

    def clean(self):
        cleaned = super().clean()
        starts_at, ends_at = cleaned.get("starts_at"), cleaned.get("ends_at")
        if starts_at and ends_at and ends_at < starts_at:
            self.add_error("ends_at", "End time must be after the start time.")
        return cleaned

    def save(self, organizer, commit=True):
        """Сохраняем событие и назначаем организатора (слаг генерирует модель)."""
        event = super().save(commit=False)
        if not event.pk:
            event.organizer = organizer
        if commit:
            event.save()
        return event


class TicketTierForm(forms.ModelForm):
    class Meta:
        model = TicketTier
        fields = ["name", "description", "price", "capacity"]

    def clean_name(self):
        return self.cleaned_data["name"].strip()

    def clean_capacity(self):
        capacity = self.cleaned_data.get("capacity")
        if capacity is not None and capacity < 1:
            raise forms.ValidationError("Capacity must be at least 1.")
        return capacity
