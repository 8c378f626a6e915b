import datetime

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse

from apps.accounts.models import Profile
from apps.educacao.models import Aluno, Curso, Frequencia, Matricula, Responsavel
from apps.educacao.services_frequencia import registrar_frequencia, roster, taxa_presenca
from apps.educacao.services_matricula import excluir_curso, matricular, trancar_matricula


User = get_user_model()


def _make_user(username: str, role: str):
    user = User.objects.create_user(username=username, password="x")
    profile, _ = Profile.objects.get_or_create(user=user)
    profile.role = role
    profile.ativo = True
    profile.save(update_fields=["role", "ativo"])
    return user


class MatriculaServiceTestCase(TestCase):
    def setUp(self):
        self.curso = Curso.objects.create(nome="Informática", vagas=1)
        self.ana = Aluno.objects.create(nome="Ana")
        self.bia = Aluno.objects.create(nome="Bia")

    def test_matricular_cria_matricula_ativa(self):
        m = matricular(aluno=self.ana, curso=self.curso)
        self.assertEqual(m.situacao, Matricula.Situacao.ATIVA)
        self.assertEqual(self.curso.vagas_ocupadas, 1)

    def test_matricula_repetida_recusada(self):
        matricular(aluno=self.ana, curso=self.curso)
        with self.assertRaises(ValidationError):
            matricular(aluno=self.ana, curso=self.curso)

    def test_curso_sem_vagas_recusa(self):
        matricular(aluno=self.ana, curso=self.curso)
        with self.assertRaisesMessage(ValidationError, "Não há vagas disponíveis"):
            matricular(aluno=self.bia, curso=self.curso)

    def test_vaga_liberada_apos_trancamento(self):
        m = matricular(aluno=self.ana, curso=self.curso)
        trancar_matricula(matricula=m)
        matricular(aluno=self.bia, curso=self.curso)
        self.assertEqual(Matricula.objects.filter(curso=self.curso).count(), 2)

    def test_curso_sem_limite(self):
        livre = Curso.objects.create(nome="Música", vagas=0)
        matricular(aluno=self.ana, curso=livre)
        matricular(aluno=self.bia, curso=livre)
        self.assertIsNone(livre.vagas_disponiveis)

    def test_trancar_duas_vezes(self):
        m = matricular(aluno=self.ana, curso=self.curso)
        trancar_matricula(matricula=m)
        with self.assertRaises(ValidationError):
            trancar_matricula(matricula=m)

    def test_excluir_curso_remove_matriculas_e_frequencias(self):
        m = matricular(aluno=self.ana, curso=self.curso)
        Frequencia.objects.create(matricula=m, data=datetime.date(2026, 3, 2))
        excluir_curso(curso=self.curso)
        self.assertFalse(Curso.objects.exists())
        self.assertFalse(Matricula.objects.exists())
        self.assertFalse(Frequencia.objects.exists())
        self.assertTrue(Aluno.objects.filter(pk=self.ana.pk).exists())


class FrequenciaServiceTestCase(TestCase):
    def setUp(self):
        self.curso = Curso.objects.create(nome="Música")
        self.outro = Curso.objects.create(nome="Dança")
        self.ana = Matricula.objects.create(aluno=Aluno.objects.create(nome="Ana"), curso=self.curso)
        self.bia = Matricula.objects.create(aluno=Aluno.objects.create(nome="Bia"), curso=self.curso)
        self.caio = Matricula.objects.create(aluno=Aluno.objects.create(nome="Caio"), curso=self.outro)
        self.dia = datetime.date(2026, 3, 2)

    def test_roster_ordenado_e_so_ativas(self):
        trancar_matricula(matricula=self.bia)
        self.assertEqual([m.aluno.nome for m in roster(self.curso)], ["Ana"])

    def test_registrar_frequencia(self):
        criados = registrar_frequencia(
            curso=self.curso,
            data=self.dia,
            marcacoes=[(self.ana.pk, "PRESENTE", "ignorado"), (self.bia.pk, "AUSENTE", " doente ")],
        )
        self.assertEqual(len(criados), 2)
        ana = Frequencia.objects.get(matricula=self.ana, data=self.dia)
        bia = Frequencia.objects.get(matricula=self.bia, data=self.dia)
        self.assertEqual(ana.motivo_ausencia, "")
        self.assertEqual(bia.status, Frequencia.Status.AUSENTE)
        self.assertEqual(bia.motivo_ausencia, "doente")

    def test_registrar_de_novo_substitui_o_dia(self):
        registrar_frequencia(curso=self.curso, data=self.dia, marcacoes=[(self.ana.pk, "AUSENTE", "")])
        registrar_frequencia(curso=self.curso, data=self.dia, marcacoes=[(self.ana.pk, "PRESENTE", "")])
        registros = Frequencia.objects.filter(matricula=self.ana, data=self.dia)
        self.assertEqual(registros.count(), 1)
        self.assertEqual(registros.get().status, Frequencia.Status.PRESENTE)

    def test_exige_curso_e_data(self):
        with self.assertRaisesMessage(ValidationError, "Selecione um curso."):
            registrar_frequencia(curso=None, data=self.dia, marcacoes=[(self.ana.pk, "PRESENTE", "")])
        with self.assertRaisesMessage(ValidationError, "Informe a data"):
            registrar_frequencia(curso=self.curso, data=None, marcacoes=[(self.ana.pk, "PRESENTE", "")])

    def test_exige_marcacoes(self):
        with self.assertRaises(ValidationError):
            registrar_frequencia(curso=self.curso, data=self.dia, marcacoes=[])

    def test_matricula_de_outro_curso_recusada_sem_gravar_nada(self):
        with self.assertRaisesMessage(ValidationError, "Matrícula inválida"):
            registrar_frequencia(
                curso=self.curso,
                data=self.dia,
                marcacoes=[(self.ana.pk, "PRESENTE", ""), (self.caio.pk, "PRESENTE", "")],
            )
        self.assertFalse(Frequencia.objects.exists())

    def test_status_invalido(self):
        with self.assertRaises(ValidationError):
            registrar_frequencia(curso=self.curso, data=self.dia, marcacoes=[(self.ana.pk, "ATRASADO", "")])

    def test_taxa_presenca(self):
        self.assertIsNone(taxa_presenca(self.ana))
        for dia, status in [(1, "PRESENTE"), (2, "PRESENTE"), (3, "AUSENTE")]:
            Frequencia.objects.create(matricula=self.ana, data=datetime.date(2026, 3, dia), status=status)
        self.assertEqual(taxa_presenca(self.ana), 67)


class AlunoViewsTestCase(TestCase):
    def setUp(self):
        self.admin = _make_user("admin", "ADMIN")
        self.client.force_login(self.admin)
        self.ana = Aluno.objects.create(nome="Ana Paula", email="ana@ong.org")
        self.bruno = Aluno.objects.create(nome="Bruno", ativo=False)

    def _nomes(self, response):
        return [row.cells[0].text for row in response.context["table"].rows]

    def test_list_search(self):
        response = self.client.get(reverse("educacao:aluno_list") + "?q=paula")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._nomes(response), ["Ana Paula"])

    def test_list_status_filter(self):
        response = self.client.get(reverse("educacao:aluno_list") + "?status=inativos")
        self.assertEqual(self._nomes(response), ["Bruno"])

    def test_list_rows_are_clickable(self):
        response = self.client.get(reverse("educacao:aluno_list"))
        row = response.context["table"].rows[0]
        self.assertTrue(row.clickable)
        self.assertEqual(row.activate(), reverse("educacao:aluno_detail", args=[self.ana.pk]))

    def test_list_empty_message(self):
        response = self.client.get(reverse("educacao:aluno_list") + "?q=ninguem")
        self.assertTrue(response.context["table"].is_empty)
        self.assertContains(response, "Nenhum aluno encontrado.")

    def test_export_csv(self):
        response = self.client.get(reverse("educacao:aluno_list") + "?export=csv")
        self.assertEqual(response.status_code, 200)
        self.assertIn("alunos.csv", response["Content-Disposition"])
        self.assertIn("Ana Paula", response.content.decode("utf-8"))

    def test_export_links_keep_search_and_status(self):
        response = self.client.get(reverse("educacao:aluno_list") + "?q=a%26b&status=inativos&page=2")
        urls = {a["label"]: a["url"] for a in response.context["actions"]}
        self.assertEqual(urls["CSV"], "?q=a%26b&status=inativos&export=csv")
        self.assertEqual(urls["PDF"], "?q=a%26b&status=inativos&export=pdf")

    def test_export_csv_respects_status(self):
        response = self.client.get(reverse("educacao:aluno_list") + "?status=inativos&export=csv")
        content = response.content.decode("utf-8")
        self.assertIn("Bruno", content)
        self.assertNotIn("Ana Paula", content)

    def test_usuario_nao_ve_botao_novo(self):
        self.client.force_login(_make_user("leitor", "USUARIO"))
        response = self.client.get(reverse("educacao:aluno_list"))
        self.assertEqual(response.status_code, 200)
        self.assertNotIn("Novo aluno", [a["label"] for a in response.context["actions"]])

    def test_usuario_nao_cria_aluno(self):
        self.client.force_login(_make_user("leitor", "USUARIO"))
        response = self.client.get(reverse("educacao:aluno_create"))
        self.assertEqual(response.status_code, 403)

    def test_create_com_responsavel(self):
        response = self.client.post(
            reverse("educacao:aluno_create"),
            {
                "nome": "  Carla Dias ",
                "data_nascimento": "2012-05-10",
                "cpf": "",
                "nis": "123.456",
                "telefone": "98988887777",
                "email": "",
                "endereco": "",
                "ativo": "on",
                "responsaveis-TOTAL_FORMS": "1",
                "responsaveis-INITIAL_FORMS": "0",
                "responsaveis-MIN_NUM_FORMS": "0",
                "responsaveis-MAX_NUM_FORMS": "1000",
                "responsaveis-0-nome": "Marta Dias",
                "responsaveis-0-cpf": "",
                "responsaveis-0-telefone": "",
                "responsaveis-0-email": "",
                "responsaveis-0-principal": "on",
            },
        )
        carla = Aluno.objects.get(nome="Carla Dias")
        self.assertRedirects(response, reverse("educacao:aluno_detail", args=[carla.pk]), fetch_redirect_response=False)
        self.assertEqual(carla.nis, "123456")
        self.assertEqual(carla.telefone, "(98) 9 8888-7777")
        self.assertEqual(carla.responsavel_principal.nome, "Marta Dias")

    def test_create_rejeita_dois_principais(self):
        data = {
            "nome": "Carla",
            "ativo": "on",
            "responsaveis-TOTAL_FORMS": "2",
            "responsaveis-INITIAL_FORMS": "0",
            "responsaveis-MIN_NUM_FORMS": "0",
            "responsaveis-MAX_NUM_FORMS": "1000",
            "responsaveis-0-nome": "Marta",
            "responsaveis-0-principal": "on",
            "responsaveis-1-nome": "José",
            "responsaveis-1-principal": "on",
        }
        response = self.client.post(reverse("educacao:aluno_create"), data)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Aluno.objects.filter(nome="Carla").exists())
        self.assertFalse(Responsavel.objects.exists())

    def test_detail_mostra_matriculas(self):
        curso = Curso.objects.create(nome="Música")
        Matricula.objects.create(aluno=self.ana, curso=curso)
        response = self.client.get(reverse("educacao:aluno_detail", args=[self.ana.pk]))
        self.assertEqual(response.status_code, 200)
        table = response.context["matriculas_table"]
        self.assertEqual(table.rows[0].cells[0].text, "Música")
        self.assertIn("atendimentos", response.context)
        self.assertIn("fichas_saude", response.context)

    def test_detail_sem_secoes_restritas_para_professor(self):
        self.client.force_login(_make_user("prof", "PROFESSOR"))
        response = self.client.get(reverse("educacao:aluno_detail", args=[self.ana.pk]))
        self.assertNotIn("atendimentos", response.context)
        self.assertNotIn("fichas_saude", response.context)

    def test_delete_bloqueado_por_matricula(self):
        Matricula.objects.create(aluno=self.ana, curso=Curso.objects.create(nome="Música"))
        response = self.client.post(reverse("educacao:aluno_delete", args=[self.ana.pk]))
        self.assertRedirects(response, reverse("educacao:aluno_detail", args=[self.ana.pk]), fetch_redirect_response=False)
        self.assertTrue(Aluno.objects.filter(pk=self.ana.pk).exists())

    def test_delete(self):
        response = self.client.post(reverse("educacao:aluno_delete", args=[self.bruno.pk]))
        self.assertRedirects(response, reverse("educacao:aluno_list"), fetch_redirect_response=False)
        self.assertFalse(Aluno.objects.filter(pk=self.bruno.pk).exists())

    def test_matricular_pela_tela_do_aluno(self):
        curso = Curso.objects.create(nome="Música")
        response = self.client.post(reverse("educacao:aluno_matricular", args=[self.ana.pk]), {"curso": curso.pk})
        self.assertRedirects(response, reverse("educacao:aluno_detail", args=[self.ana.pk]), fetch_redirect_response=False)
        self.assertTrue(Matricula.objects.filter(aluno=self.ana, curso=curso).exists())

    def test_trancar_volta_para_o_curso(self):
        curso = Curso.objects.create(nome="Música")
        m = Matricula.objects.create(aluno=self.ana, curso=curso)
        response = self.client.post(reverse("educacao:matricula_trancar", args=[m.pk]) + "?origem=curso")
        self.assertRedirects(response, reverse("educacao:curso_detail", args=[curso.pk]), fetch_redirect_response=False)
        m.refresh_from_db()
        self.assertEqual(m.situacao, Matricula.Situacao.TRANCADA)


class CursoViewsTestCase(TestCase):
    def setUp(self):
        self.client.force_login(_make_user("admin", "ADMIN"))
        self.curso = Curso.objects.create(nome="Informática", turno=Curso.Turno.TARDE, vagas=2)
        Curso.objects.create(nome="Música", turno=Curso.Turno.MANHA)

    def test_list_turno_filter(self):
        response = self.client.get(reverse("educacao:curso_list") + "?turno=TARDE")
        self.assertEqual([row.cells[0].text for row in response.context["table"].rows], ["Informática"])

    def test_create(self):
        response = self.client.post(
            reverse("educacao:curso_create"),
            {"nome": "Dança", "descricao": "", "carga_horaria": "40", "turno": "NOITE", "vagas": "10"},
        )
        curso = Curso.objects.get(nome="Dança")
        self.assertRedirects(response, reverse("educacao:curso_detail", args=[curso.pk]), fetch_redirect_response=False)

    def test_detail_ocupacao(self):
        Matricula.objects.create(aluno=Aluno.objects.create(nome="Ana"), curso=self.curso)
        response = self.client.get(reverse("educacao:curso_detail", args=[self.curso.pk]))
        self.assertEqual(response.context["ocupacao"], {"ativos": 1, "vagas": 2, "percentual": 50})

    def test_matricular_pela_tela_do_curso(self):
        ana = Aluno.objects.create(nome="Ana")
        self.client.post(reverse("educacao:curso_matricular", args=[self.curso.pk]), {"aluno": ana.pk})
        self.assertTrue(Matricula.objects.filter(aluno=ana, curso=self.curso).exists())

    def test_delete_leva_matriculas(self):
        Matricula.objects.create(aluno=Aluno.objects.create(nome="Ana"), curso=self.curso)
        response = self.client.post(reverse("educacao:curso_delete", args=[self.curso.pk]))
        self.assertRedirects(response, reverse("educacao:curso_list"), fetch_redirect_response=False)
        self.assertFalse(Curso.objects.filter(pk=self.curso.pk).exists())


class FrequenciaViewTestCase(TestCase):
    def setUp(self):
        self.curso = Curso.objects.create(nome="Música")
        self.ana = Matricula.objects.create(aluno=Aluno.objects.create(nome="Ana"), curso=self.curso)
        self.bia = Matricula.objects.create(aluno=Aluno.objects.create(nome="Bia"), curso=self.curso)
        self.url = reverse("educacao:frequencia")

    def _post(self):
        return self.client.post(
            self.url,
            {
                "curso": self.curso.pk,
                "data": "2026-03-02",
                f"status_{self.ana.pk}": "PRESENTE",
                f"status_{self.bia.pk}": "AUSENTE",
                f"motivo_{self.bia.pk}": "Consulta médica",
            },
        )

    def test_get_lista_turma(self):
        self.client.force_login(_make_user("prof", "PROFESSOR"))
        response = self.client.get(self.url + f"?curso={self.curso.pk}&data=2026-03-02")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([a["nome"] for a in response.context["alunos"]], ["Ana", "Bia"])
        self.assertTrue(response.context["can_edit"])

    def test_professor_registra_chamada(self):
        self.client.force_login(_make_user("prof", "PROFESSOR"))
        response = self._post()
        self.assertEqual(response.status_code, 302)
        falta = Frequencia.objects.get(matricula=self.bia)
        self.assertEqual(falta.motivo_ausencia, "Consulta médica")
        self.assertEqual(Frequencia.objects.count(), 2)

    def test_marcacoes_existentes_aparecem(self):
        self.client.force_login(_make_user("prof", "PROFESSOR"))
        self._post()
        response = self.client.get(self.url + f"?curso={self.curso.pk}&data=2026-03-02")
        bia = next(a for a in response.context["alunos"] if a["nome"] == "Bia")
        self.assertEqual(bia["status"], "AUSENTE")
        self.assertTrue(bia["registrada"])

    def test_usuario_nao_registra(self):
        self.client.force_login(_make_user("leitor", "USUARIO"))
        response = self._post()
        self.assertRedirects(response, self.url, fetch_redirect_response=False)
        self.assertFalse(Frequencia.objects.exists())
