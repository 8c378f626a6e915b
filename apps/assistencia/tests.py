import datetime

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from apps.accounts.models import Profile
from apps.assistencia.forms import AtendimentoSocialForm
from apps.assistencia.models import AtendimentoSocial
from apps.educacao.models import Aluno


User = get_user_model()


def _make_user(username: str, role: str):
    user = User.objects.create_user(username=username, password="x")
    profile, _ = Profile.objects.get_or_create(user=user)
    profile.role = role
    profile.ativo = True
    profile.save(update_fields=["role", "ativo"])
    return user


class AtendimentoSocialFormTestCase(TestCase):
    def setUp(self):
        self.aluno = Aluno.objects.create(nome="Ana")

    def test_exige_necessidade(self):
        form = AtendimentoSocialForm(data={"aluno": self.aluno.pk, "data": "2026-03-02"})
        self.assertFalse(form.is_valid())
        self.assertIn("necessidades", form.errors)

    def test_exige_aluno(self):
        form = AtendimentoSocialForm(data={"data": "2026-03-02", "necessidades": ["Moradia"]})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["aluno"], ["Por favor, selecione um aluno."])

    def test_aluno_inativo_fora_da_lista(self):
        inativo = Aluno.objects.create(nome="Bruno", ativo=False)
        form = AtendimentoSocialForm()
        self.assertNotIn(inativo, form.fields["aluno"].queryset)

    def test_ordem_do_catalogo(self):
        form = AtendimentoSocialForm(
            data={
                "aluno": self.aluno.pk,
                "data": "2026-03-02",
                "necessidades": ["Transporte", "Moradia"],
                "encaminhamentos": ["CREAS", "CRAS"],
            }
        )
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data["necessidades"], ["Moradia", "Transporte"])
        self.assertEqual(form.cleaned_data["encaminhamentos"], ["CRAS", "CREAS"])


class AtendimentoViewsTestCase(TestCase):
    def setUp(self):
        self.assistente = _make_user("assistente", "ASSISTENTE_SOCIAL")
        self.client.force_login(self.assistente)
        self.ana = Aluno.objects.create(nome="Ana")
        self.bia = Aluno.objects.create(nome="Bia")
        AtendimentoSocial.objects.create(
            aluno=self.ana, data=datetime.date(2026, 3, 1), necessidades=["Moradia", "Renda"]
        )
        AtendimentoSocial.objects.create(aluno=self.bia, data=datetime.date(2026, 3, 2), necessidades=["Saúde"])

    def _alunos(self, response):
        return [row.cells[1].text for row in response.context["table"].rows]

    def test_list_mais_recente_primeiro(self):
        response = self.client.get(reverse("assistencia:atendimento_list"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._alunos(response), ["Bia", "Ana"])

    def test_filtro_por_necessidade(self):
        response = self.client.get(reverse("assistencia:atendimento_list") + "?necessidade=Renda")
        self.assertEqual(self._alunos(response), ["Ana"])
        ativo = [f for f in response.context["filters"] if f["active"]]
        self.assertEqual([f["label"] for f in ativo], ["Renda"])

    def test_busca_por_aluno(self):
        response = self.client.get(reverse("assistencia:atendimento_list") + "?q=bi")
        self.assertEqual(self._alunos(response), ["Bia"])

    def test_create_registra_autor(self):
        response = self.client.post(
            reverse("assistencia:atendimento_create"),
            {
                "aluno": self.ana.pk,
                "data": "2026-03-05",
                "necessidades": ["Documentação"],
                "encaminhamentos": ["CRAS"],
                "observacoes": "Sem certidão de nascimento",
            },
        )
        self.assertRedirects(response, reverse("assistencia:atendimento_list"), fetch_redirect_response=False)
        atendimento = AtendimentoSocial.objects.get(data=datetime.date(2026, 3, 5))
        self.assertEqual(atendimento.registrado_por, self.assistente)
        self.assertEqual(atendimento.necessidades, ["Documentação"])
        self.assertEqual(atendimento.encaminhamentos_texto, "CRAS")

    def test_create_aluno_pre_selecionado(self):
        response = self.client.get(reverse("assistencia:atendimento_create") + f"?aluno={self.bia.pk}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(str(response.context["form"].initial["aluno"]), str(self.bia.pk))

    def test_export_csv(self):
        response = self.client.get(reverse("assistencia:atendimento_list") + "?export=csv")
        self.assertIn("atendimentos_sociais.csv", response["Content-Disposition"])
        self.assertIn("Moradia, Renda", response.content.decode("utf-8"))

    def test_professor_sem_acesso(self):
        self.client.force_login(_make_user("prof", "PROFESSOR"))
        response = self.client.get(reverse("assistencia:atendimento_list"))
        self.assertEqual(response.status_code, 403)
