from __future__ import annotations

from django import forms
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password

from apps.core.masks import format_phone

from .models import Profile

User = get_user_model()


class LoginForm(forms.Form):
    identificador = forms.CharField(label="E-mail ou usuário", max_length=150)
    password = forms.CharField(label="Senha", widget=forms.PasswordInput)


class _SenhaConfirmadaMixin:
    """password1/password2 precisam bater e passar pelos validadores do Django."""

    senha_obrigatoria = True

    def _clean_senhas(self, cleaned, user=None):
        senha1 = cleaned.get("password1") or ""
        senha2 = cleaned.get("password2") or ""
        if not senha1 and not senha2 and not self.senha_obrigatoria:
            return cleaned
        if not senha1:
            self.add_error("password1", "Informe a senha.")
            return cleaned
        if senha1 != senha2:
            self.add_error("password2", "As senhas não coincidem.")
            return cleaned
        try:
            validate_password(senha1, user=user)
        except forms.ValidationError as exc:
            self.add_error("password1", exc)
        return cleaned


class RegisterForm(_SenhaConfirmadaMixin, forms.Form):
    nome = forms.CharField(label="Nome completo", max_length=150)
    email = forms.EmailField(label="E-mail")
    password1 = forms.CharField(label="Senha", widget=forms.PasswordInput)
    password2 = forms.CharField(label="Confirmar senha", widget=forms.PasswordInput)

    def clean_email(self):
        email = (self.cleaned_data.get("email") or "").strip().lower()
        if User.objects.filter(email__iexact=email).exists() or User.objects.filter(username__iexact=email).exists():
            raise forms.ValidationError("Já existe uma conta com este e-mail.")
        return email

    def clean(self):
        return self._clean_senhas(super().clean())


class MeuPerfilForm(forms.Form):
    nome = forms.CharField(label="Nome completo", max_length=150)
    email = forms.EmailField(label="E-mail")
    telefone = forms.CharField(label="Telefone", max_length=40, required=False)

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = user

    def clean_email(self):
        email = (self.cleaned_data.get("email") or "").strip().lower()
        if User.objects.filter(email__iexact=email).exclude(pk=self.user.pk).exists():
            raise forms.ValidationError("Este e-mail já está em uso.")
        return email

    def clean_telefone(self):
        return format_phone(self.cleaned_data.get("telefone"))


class AlterarSenhaForm(_SenhaConfirmadaMixin, forms.Form):
    senha_atual = forms.CharField(label="Senha atual", widget=forms.PasswordInput)
    password1 = forms.CharField(label="Nova senha", widget=forms.PasswordInput)
    password2 = forms.CharField(label="Confirmar nova senha", widget=forms.PasswordInput)

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = user

    def clean_senha_atual(self):
        senha = self.cleaned_data.get("senha_atual") or ""
        if not self.user.check_password(senha):
            raise forms.ValidationError("Senha atual incorreta.")
        return senha

    def clean(self):
        return self._clean_senhas(super().clean(), user=self.user)


class UsuarioForm(_SenhaConfirmadaMixin, forms.Form):
    """Criação/edição de usuário pelo administrador. Na edição a senha é opcional."""

    nome = forms.CharField(label="Nome completo", max_length=150)
    email = forms.EmailField(label="E-mail")
    telefone = forms.CharField(label="Telefone", max_length=40, required=False)
    role = forms.ChoiceField(label="Função", choices=Profile.Role.choices, initial=Profile.Role.USUARIO)
    ativo = forms.BooleanField(label="Ativo", required=False, initial=True)
    password1 = forms.CharField(label="Senha", widget=forms.PasswordInput, required=False)
    password2 = forms.CharField(label="Confirmar senha", widget=forms.PasswordInput, required=False)

    def __init__(self, *args, edited_user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.edited_user = edited_user
        self.senha_obrigatoria = edited_user is None
        if edited_user is not None:
            self.fields["password1"].help_text = "Deixe em branco para manter a senha atual."
            if not self.is_bound:
                profile = getattr(edited_user, "profile", None)
                self.initial.update(
                    {
                        "nome": edited_user.get_full_name(),
                        "email": edited_user.email,
                        "telefone": getattr(profile, "telefone", ""),
                        "role": getattr(profile, "role", Profile.Role.USUARIO),
                        "ativo": bool(edited_user.is_active and getattr(profile, "ativo", True)),
                    }
                )

    def clean_email(self):
        email = (self.cleaned_data.get("email") or "").strip().lower()
        qs = User.objects.filter(email__iexact=email)
        if self.edited_user is not None:
            qs = qs.exclude(pk=self.edited_user.pk)
        if qs.exists():
            raise forms.ValidationError("Já existe um usuário com este e-mail.")
        return email

    def clean_telefone(self):
        return format_phone(self.cleaned_data.get("telefone"))

    def clean(self):
        return self._clean_senhas(super().clean(), user=self.edited_user)


def split_nome(nome: str) -> tuple[str, str]:
    partes = (nome or "").strip().split(" ", 1)
    first = partes[0][:150]
    last = partes[1].strip()[:150] if len(partes) > 1 else ""
    return first, last
