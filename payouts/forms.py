from django import forms


class BankAccountForm(forms.Form):
    account_number = forms.RegexField(regex=r'^\d{10}$', error_messages={
        'invalid': "Account number must be 10 digits",
    })
    bank_code = forms.CharField(max_length=20)

    def clean_bank_code(self):
        return self.cleaned_data['bank_code'].strip()


class WithdrawalForm(BankAccountForm):
    amount = forms.IntegerField(min_value=1, error_messages={
        'min_value': "Amount must be greater than 0",
    })
    account_name = forms.CharField(max_length=255)
    reason = forms.CharField(max_length=255, required=False)


class BulkActionForm(forms.Form):
    ids = forms.JSONField()
    reason = forms.CharField(max_length=255, required=False)

    def clean_ids(self):
        ids = self.cleaned_data['ids']
        if not isinstance(ids, list) or not ids:
            raise forms.ValidationError("ids must be a non-empty list")
        try:
            return [int(i) for i in ids]
        except (TypeError, ValueError):
            raise forms.ValidationError("ids must be integers")
