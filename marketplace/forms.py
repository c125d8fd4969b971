from django import forms
from django.contrib.auth import authenticate
from django.contrib.auth.models import User
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError

from .models import Category, Listing, Profile, UserRole


class SignupForm(forms.Form):
    email = forms.EmailField(max_length=254)
    full_name = forms.CharField(min_length=2, max_length=100)
    password = forms.CharField(widget=forms.PasswordInput, min_length=8)

    def clean_email(self):
        email = self.cleaned_data["email"].strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError("Email already registered.")
        return email

    def clean_full_name(self):
        return self.cleaned_data["full_name"].strip()

    def clean(self):
        cd = super().clean()
        if cd.get("password"):
            validate_password(cd["password"])
        return cd


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(widget=forms.PasswordInput)

    def clean(self):
        cd = super().clean()
        email = (cd.get("email") or "").strip().lower()
        user = User.objects.filter(email__iexact=email).first()
        authenticated = None
        if user is not None and cd.get("password"):
            authenticated = authenticate(username=user.username, password=cd["password"])
        if authenticated is None:
            # Don't reveal whether the email exists
            raise ValidationError("Invalid email or password.")
        self.user = authenticated
        return cd


class ListingForm(forms.ModelForm):
    class Meta:
        model = Listing
        fields = ["title", "description", "price", "currency", "location", "category", "status"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["category"].required = True
        self.fields["category"].error_messages["required"] = "Please choose a category."
        self.fields["status"].required = False
        self.fields["currency"].required = False

    def clean_title(self):
        return self.cleaned_data["title"].strip()

    def clean_price(self):
        price = self.cleaned_data["price"]
        if price < 0:
            raise ValidationError("Price cannot be negative.")
        return price

    def clean_status(self):
        return self.cleaned_data.get("status") or self.instance.status or Listing.Status.ACTIVE

    def clean_currency(self):
        return self.cleaned_data.get("currency") or self.instance.currency or Listing.Currency.CHF


class ProfileForm(forms.ModelForm):
    class Meta:
        model = Profile
        fields = ["full_name", "phone", "bio"]

    def clean_full_name(self):
        full_name = self.cleaned_data["full_name"].strip()
        if len(full_name) < 2:
            raise ValidationError("Full name must be at least 2 characters.")
        return full_name

    def clean_phone(self):
        return (self.cleaned_data.get("phone") or "").strip()


class CategoryForm(forms.ModelForm):
    class Meta:
        model = Category
        fields = ["name", "slug", "description"]

    def clean_name(self):
        return self.cleaned_data["name"].strip()

    def clean_slug(self):
        return self.cleaned_data["slug"].strip().lower()

    def clean_description(self):
        description = (self.cleaned_data.get("description") or "").strip()
        return description or None


class ModerationForm(forms.Form):
    status = forms.ChoiceField(choices=Listing.ModerationStatus.choices)


class RoleForm(forms.Form):
    role = forms.ChoiceField(choices=UserRole.Role.choices)
