from django import forms
from django.forms import inlineformset_factory

from apps.core.masks import format_cpf, format_phone, only_digits

from .models import Aluno, Curso, Matricula, Responsavel

CPF_WIDGET = forms.TextInput(
    attrs={
        "placeholder": "123.456.789-00",
        "inputmode": "numeric",
        "maxlength": "14",
        "data-mask": "cpf",
        "title": "Formato: 123.456.789-00",
    }
)
TELEFONE_WIDGET = forms.TextInput(
    attrs={
        "placeholder": "(98) 9 9999-9999",
        "inputmode": "tel",
        "maxlength": "17",
        "data-mask": "phone",
        "title": "Ex.: (98) 9 9999-9999",
    }
)


class CPFTelefoneFormMixin:
    """
    CPF e telefone com máscara.

    Na edição, o CPF aparece decifrado. Se não for possível decifrar, o valor
    mascarado salvo volta intacto e o CPF cifrado é preservado.
    """

    def _init_cpf(self):
        if self.instance and self.instance.pk:
            self.initial["cpf"] = self.instance.cpf_display
        self._cpf_alterado = False

    def clean_cpf(self):
        raw = (self.cleaned_data.get("cpf") or "").strip()
        if "*" in raw and self.instance.pk and raw == self.instance.cpf:
            return self.instance.cpf

        digits = only_digits(raw)
        if digits and len(digits) != 11:
            raise forms.ValidationError("CPF deve ter 11 dígitos.")
        self._cpf_alterado = True
        return format_cpf(digits)

    def clean_telefone(self):
        return format_phone(self.cleaned_data.get("telefone"))

    def save(self, commit=True):
        if self._cpf_alterado:
            self.instance.cpf_enc = ""
        return super().save(commit=commit)


class AlunoForm(CPFTelefoneFormMixin, forms.ModelForm):
    class Meta:
        model = Aluno
        fields = ["nome", "data_nascimento", "cpf", "nis", "telefone", "email", "endereco", "ativo"]
        widgets = {
            "data_nascimento": forms.DateInput(attrs={"type": "date"}, format="%Y-%m-%d"),
            "cpf": CPF_WIDGET,
            "telefone": TELEFONE_WIDGET,
            "email": forms.EmailInput(attrs={"placeholder": "nome@exemplo.com", "inputmode": "email"}),
            "nis": forms.TextInput(attrs={"placeholder": "Apenas números", "inputmode": "numeric"}),
            "endereco": forms.Textarea(attrs={"rows": 2}),
        }
        labels = {
            "nome": "Nome completo",
            "data_nascimento": "Data de nascimento",
            "cpf": "CPF",
            "endereco": "Endereço",
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._init_cpf()

    def clean_nome(self):
        nome = (self.cleaned_data.get("nome") or "").strip()
        if not nome:
            raise forms.ValidationError("Informe o nome do aluno.")
        return nome

    def clean_nis(self):
        return only_digits(self.cleaned_data.get("nis"))


class ResponsavelForm(CPFTelefoneFormMixin, forms.ModelForm):
    class Meta:
        model = Responsavel
        fields = ["nome", "cpf", "telefone", "email", "principal"]
        widgets = {
            "cpf": CPF_WIDGET,
            "telefone": TELEFONE_WIDGET,
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._init_cpf()


class BaseResponsavelFormSet(forms.BaseInlineFormSet):
    def clean(self):
        super().clean()
        principais = 0
        for form in self.forms:
            if not hasattr(form, "cleaned_data") or not form.cleaned_data:
                continue
            if form.cleaned_data.get("DELETE"):
                continue
            if form.cleaned_data.get("principal"):
                principais += 1
        if principais > 1:
            raise forms.ValidationError("Marque apenas um responsável principal.")


ResponsavelFormSet = inlineformset_factory(
    Aluno,
    Responsavel,
    form=ResponsavelForm,
    formset=BaseResponsavelFormSet,
    extra=1,
    can_delete=True,
)


class CursoForm(forms.ModelForm):
    class Meta:
        model = Curso
        fields = [
            "nome",
            "descricao",
            "carga_horaria",
            "turno",
            "vagas",
            "gestor_executivo",
            "gestor_voluntario",
            "orientador_educacional",
        ]
        widgets = {
            "descricao": forms.Textarea(attrs={"rows": 3}),
        }
        labels = {
            "descricao": "Descrição",
            "carga_horaria": "Carga horária (h)",
            "gestor_executivo": "Gestor executivo",
            "gestor_voluntario": "Gestor voluntário",
            "orientador_educacional": "Orientador educacional",
        }

    def clean_nome(self):
        nome = (self.cleaned_data.get("nome") or "").strip()
        if not nome:
            raise forms.ValidationError("Informe o nome do curso.")
        return nome


class MatricularAlunoForm(forms.Form):
    """Usado na tela do curso (escolhe o aluno)."""

    aluno = forms.ModelChoiceField(queryset=Aluno.objects.none(), label="Aluno")

    def __init__(self, *args, curso: Curso, **kwargs):
        super().__init__(*args, **kwargs)
        ja_matriculados = Matricula.objects.filter(curso=curso).values_list("aluno_id", flat=True)
        self.fields["aluno"].queryset = Aluno.objects.filter(ativo=True).exclude(id__in=ja_matriculados)


class MatricularEmCursoForm(forms.Form):
    """Usado na tela do aluno (escolhe o curso)."""

    curso = forms.ModelChoiceField(queryset=Curso.objects.none(), label="Curso")

    def __init__(self, *args, aluno: Aluno, **kwargs):
        super().__init__(*args, **kwargs)
        ja_matriculado = Matricula.objects.filter(aluno=aluno).values_list("curso_id", flat=True)
        self.fields["curso"].queryset = Curso.objects.exclude(id__in=ja_matriculado)


class ChamadaFiltroForm(forms.Form):
    curso = forms.ModelChoiceField(queryset=Curso.objects.all(), label="Curso")
    data = forms.DateField(label="Data", widget=forms.DateInput(attrs={"type": "date"}, format="%Y-%m-%d"))
