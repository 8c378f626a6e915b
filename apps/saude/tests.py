import datetime

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from apps.accounts.models import Profile
from apps.educacao.models import Aluno
from apps.saude.forms import FichaSaudeForm
from apps.saude.models import FichaSaude


User = get_user_model()


def _make_user(username: str, role: str):
    user = User.objects.create_user(username=username, password="x")
    profile, _ = Profile.objects.get_or_create(user=user)
    profile.role = role
    profile.ativo = True
    profile.save(update_fields=["role", "ativo"])
    return user


class FichaSaudeFormTestCase(TestCase):
    def setUp(self):
        self.aluno = Aluno.objects.create(nome="Ana")

    def test_campos_por_tipo(self):
        odonto = FichaSaudeForm(tipo=FichaSaude.Tipo.ODONTOLOGICA)
        nutri = FichaSaudeForm(tipo=FichaSaude.Tipo.NUTRICIONAL)
        self.assertIn("higiene_bucal", odonto.fields)
        self.assertNotIn("imc", odonto.fields)
        self.assertIn("imc", nutri.fields)
        self.assertNotIn("higiene_bucal", nutri.fields)

    def test_profissional_obrigatorio(self):
        form = FichaSaudeForm(
            data={"aluno": self.aluno.pk, "profissional": "   ", "data": "2026-03-02"},
            tipo=FichaSaude.Tipo.MEDICA,
        )
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["profissional"], ["Por favor, informe o nome do profissional."])

    def test_detalhes_gravados_sem_vazios(self):
        form = FichaSaudeForm(
            data={
                "aluno": self.aluno.pk,
                "profissional": "Dra. Lúcia",
                "data": "2026-03-02",
                "avaliacao_nutricional": " Baixo peso ",
                "imc": "17.5",
                "habitos_alimentares": "",
            },
            tipo=FichaSaude.Tipo.NUTRICIONAL,
        )
        self.assertTrue(form.is_valid(), form.errors)
        ficha = form.save()
        self.assertEqual(ficha.tipo, FichaSaude.Tipo.NUTRICIONAL)
        self.assertEqual(ficha.detalhes, {"avaliacao_nutricional": "Baixo peso", "imc": "17.5"})

    def test_imc_negativo_recusado(self):
        form = FichaSaudeForm(
            data={"aluno": self.aluno.pk, "profissional": "Dra. Lúcia", "data": "2026-03-02", "imc": "-1"},
            tipo=FichaSaude.Tipo.NUTRICIONAL,
        )
        self.assertFalse(form.is_valid())
        self.assertIn("imc", form.errors)


class FichaSaudeModelTestCase(TestCase):
    def test_detalhes_rotulados_na_ordem_do_tipo(self):
        ficha = FichaSaude.objects.create(
            aluno=Aluno.objects.create(nome="Ana"),
            tipo=FichaSaude.Tipo.MEDICA,
            profissional="Dr. Paulo",
            detalhes={"medicamentos": "Nenhum", "alergias": "Dipirona", "historico_clinico": ""},
        )
        self.assertEqual(ficha.detalhes_rotulados(), [("Alergias", "Dipirona"), ("Medicamentos", "Nenhum")])


class FichaSaudeViewsTestCase(TestCase):
    def setUp(self):
        self.profissional = _make_user("saude", "PROFISSIONAL_SAUDE")
        self.client.force_login(self.profissional)
        self.ana = Aluno.objects.create(nome="Ana")
        FichaSaude.objects.create(aluno=self.ana, tipo=FichaSaude.Tipo.ODONTOLOGICA, profissional="Dr. Caio")
        FichaSaude.objects.create(
            aluno=self.ana, tipo=FichaSaude.Tipo.PSICOLOGICA, profissional="Dra. Rita", data=datetime.date(2026, 3, 1)
        )

    def test_list_padrao_odontologica(self):
        response = self.client.get(reverse("saude:ficha_list"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row.cells[2] for row in response.context["table"].rows], ["Dr. Caio"])

    def test_abas_com_totais(self):
        response = self.client.get(reverse("saude:ficha_list") + "?tipo=psicologica")
        labels = [f["label"] for f in response.context["filters"]]
        self.assertEqual(labels, ["Odontológica (1)", "Psicológica (1)", "Nutricional (0)", "Médica (0)"])
        self.assertTrue(response.context["filters"][1]["active"])

    def test_aba_vazia(self):
        response = self.client.get(reverse("saude:ficha_list") + "?tipo=MEDICA")
        self.assertTrue(response.context["table"].is_empty)
        self.assertContains(response, "Nenhuma ficha médica registrada.")

    def test_create_usa_tipo_da_aba(self):
        response = self.client.post(
            reverse("saude:ficha_create"),
            {
                "tipo": "MEDICA",
                "aluno": self.ana.pk,
                "profissional": "Dr. Paulo",
                "data": "2026-03-05",
                "alergias": "Lactose",
            },
        )
        self.assertRedirects(response, reverse("saude:ficha_list") + "?tipo=MEDICA", fetch_redirect_response=False)
        ficha = FichaSaude.objects.get(tipo=FichaSaude.Tipo.MEDICA)
        self.assertEqual(ficha.detalhes, {"alergias": "Lactose"})
        self.assertEqual(ficha.registrado_por, self.profissional)

    def test_create_form_mostra_campos_do_tipo(self):
        response = self.client.get(reverse("saude:ficha_create") + "?tipo=PSICOLOGICA")
        self.assertIn("diagnostico", response.context["form"].fields)
        self.assertEqual(response.context["hidden_fields"], {"tipo": "PSICOLOGICA"})

    def test_assistente_social_sem_acesso(self):
        self.client.force_login(_make_user("assistente", "ASSISTENTE_SOCIAL"))
        response = self.client.get(reverse("saude:ficha_list"))
        self.assertEqual(response.status_code, 403)
