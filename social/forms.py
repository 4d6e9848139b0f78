from django import forms


class SendMessageForm(forms.Form):
    to_user_id = forms.CharField(max_length=64)
    text = forms.CharField(required=False, strip=True)
    image = forms.ImageField(required=False)
    replyTo = forms.IntegerField(required=False, min_value=1)

    def clean(self):
        cleaned = super().clean()
        if not cleaned.get('text') and not cleaned.get('image'):
            raise forms.ValidationError("Message text or image required")
        return cleaned


class ProfileUpdateForm(forms.Form):
    username = forms.CharField(required=False, max_length=150)
    full_name = forms.CharField(required=False, max_length=150)
    bio = forms.CharField(required=False, max_length=500)
    location = forms.CharField(required=False, max_length=120)
    profile = forms.ImageField(required=False)
    cover = forms.ImageField(required=False)

    def clean_username(self):
        username = self.cleaned_data.get('username', '').strip()
        if username and not username.replace('_', '').replace('.', '').isalnum():
            raise forms.ValidationError("Username can only contain letters, numbers, dots and underscores.")
        return username


def first_error(form):
    """Single human-readable message for a failed form"""
    for errors in form.errors.values():
        if errors:
            return errors[0]
    return "Invalid request"
