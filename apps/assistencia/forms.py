from django import forms

from apps.educacao.models import Aluno

from .models import ENCAMINHAMENTOS, NECESSIDADES, AtendimentoSocial


class AtendimentoSocialForm(forms.ModelForm):
    necessidades = forms.MultipleChoiceField(
        label="Necessidades identificadas",
        choices=[(n, n) for n in NECESSIDADES],
        widget=forms.CheckboxSelectMultiple,
        required=False,
    )
    encaminhamentos = forms.MultipleChoiceField(
        label="Encaminhamentos",
        choices=[(e, e) for e in ENCAMINHAMENTOS],
        widget=forms.CheckboxSelectMultiple,
        required=False,
    )

    class Meta:
        model = AtendimentoSocial
        fields = ["aluno", "data", "necessidades", "observacoes", "encaminhamentos"]
        widgets = {
            "data": forms.DateInput(attrs={"type": "date"}, format="%Y-%m-%d"),
            "observacoes": forms.Textarea(attrs={"rows": 3}),
        }
        labels = {"observacoes": "Observações"}
        error_messages = {
            "aluno": {"required": "Por favor, selecione um aluno."},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["aluno"].queryset = Aluno.objects.filter(ativo=True).order_by("nome")

    def clean_necessidades(self):
        necessidades = self.cleaned_data.get("necessidades") or []
        if not necessidades:
            raise forms.ValidationError("Por favor, selecione pelo menos uma necessidade identificada.")
        # mantém a ordem do catálogo
        return [n for n in NECESSIDADES if n in necessidades]

    def clean_encaminhamentos(self):
        escolhidos = self.cleaned_data.get("encaminhamentos") or []
        return [e for e in ENCAMINHAMENTOS if e in escolhidos]
