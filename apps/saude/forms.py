from decimal import Decimal

from django import forms

from apps.educacao.models import Aluno

from .fields import DETALHES_POR_TIPO
from .models import FichaSaude


class FichaSaudeForm(forms.ModelForm):
    """
    Campos comuns + campos de detalhe do tipo escolhido (gravados em `detalhes`).
    """

    class Meta:
        model = FichaSaude
        fields = ["aluno", "profissional", "data", "observacoes"]
        widgets = {
            "data": forms.DateInput(attrs={"type": "date"}, format="%Y-%m-%d"),
            "observacoes": forms.Textarea(attrs={"rows": 3}),
        }
        labels = {"observacoes": "Observações"}
        error_messages = {
            "aluno": {"required": "Por favor, selecione um aluno."},
            "profissional": {"required": "Por favor, informe o nome do profissional."},
        }

    def __init__(self, *args, tipo: str, **kwargs):
        super().__init__(*args, **kwargs)
        self.tipo = tipo
        self.fields["aluno"].queryset = Aluno.objects.filter(ativo=True).order_by("nome")

        self.campos_detalhe = DETALHES_POR_TIPO.get(tipo, [])
        for campo in self.campos_detalhe:
            if campo.numeric:
                self.fields[campo.key] = forms.DecimalField(
                    label=campo.label, required=False, max_digits=5, decimal_places=2, min_value=Decimal("0")
                )
            else:
                self.fields[campo.key] = forms.CharField(
                    label=campo.label, required=False, widget=forms.Textarea(attrs={"rows": 2})
                )

    def clean_profissional(self):
        nome = (self.cleaned_data.get("profissional") or "").strip()
        if not nome:
            raise forms.ValidationError("Por favor, informe o nome do profissional.")
        return nome

    def save(self, commit=True):
        ficha = super().save(commit=False)
        ficha.tipo = self.tipo
        detalhes = {}
        for campo in self.campos_detalhe:
            valor = self.cleaned_data.get(campo.key)
            if valor in (None, ""):
                continue
            detalhes[campo.key] = str(valor) if campo.numeric else valor.strip()
        ficha.detalhes = detalhes
        if commit:
            ficha.save()
        return ficha
