# apps/core/forms.py
from __future__ import annotations

from django import forms

from .models import Evento


class EventoForm(forms.ModelForm):
    class Meta:
        model = Evento
        fields = ["titulo", "descricao", "data", "hora", "local"]
        widgets = {
            "data": forms.DateInput(attrs={"type": "date"}, format="%Y-%m-%d"),
            "hora": forms.TimeInput(attrs={"type": "time"}, format="%H:%M"),
            "descricao": forms.Textarea(attrs={"rows": 3}),
        }
        labels = {
            "titulo": "Título",
            "descricao": "Descrição",
            "data": "Data",
            "hora": "Horário",
            "local": "Local",
        }

    def clean_titulo(self):
        titulo = (self.cleaned_data.get("titulo") or "").strip()
        if not titulo:
            raise forms.ValidationError("Informe o título do evento.")
        return titulo
