# users/forms.py
from django import forms
from django.contrib.auth import get_user_model
from django.contrib.auth.forms import UserCreationForm
from django.core.exceptions import ValidationError

from tickets.forms import nigerian_phone

User = get_user_model()


class PhoneMixin:
    """Телефон необязателен; пробелы убираются, формат проверяется."""

    def clean_phone(self):
        phone = (self.cleaned_data.get("phone") or "").replace(" ", "")
        if phone:
            nigerian_phone(phone)
        return phone


class UserRegisterForm(PhoneMixin, UserCreationForm):
    email = forms.EmailField(label="Email", required=True)
    first_name = forms.CharField(label="Имя", required=False)
    last_name = forms.CharField(label="Фамилия", required=False)
    phone = forms.CharField(label="Телефон", max_length=20, required=False)

    class Meta(UserCreationForm.Meta):
        model = User
        fields = ("username", "email", "first_name", "last_name", "phone")

    def clean_email(self):
        email = self.cleaned_data["email"].lower().strip()
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError("A user with this email already exists.")
        return email

    def save(self, commit=True):
        # роль при регистрации всегда покупатель, организатора назначает администратор
        user = super().save(commit=False)
        user.role = User.Role.USER
        if commit:
            user.save()
        return user


class UserUpdateForm(PhoneMixin, forms.ModelForm):
    email = forms.EmailField(label="Email", required=True)

    class Meta:
        model = User
        fields = ("username", "email", "first_name", "last_name", "phone")

    def clean_email(self):
        email = self.cleaned_data["email"].lower().strip()
        if User.objects.filter(email__iexact=email).exclude(pk=self.instance.pk).exists():
            raise ValidationError("This email is already used by another account.")
        if email != (self.instance.email or "").lower():
            # новый адрес нужно подтвердить заново
            self.instance.email_verified_at = None
        return email
