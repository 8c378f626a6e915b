import datetime

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.test import SimpleTestCase, TestCase
from django.urls import reverse

from apps.accounts.models import Profile
from apps.assistencia.models import AtendimentoSocial
from apps.core.session import AuthSession
from apps.educacao.models import Aluno, Curso, Frequencia, Matricula
from apps.relatorios.catalog import RELATORIOS, buscar_relatorios
from apps.relatorios.services import BUILDERS, condicoes_da_ficha, faixa_etaria, gerar_relatorio, tendencia
from apps.saude.models import FichaSaude


User = get_user_model()

HOJE = datetime.date(2026, 3, 31)
SESSAO = AuthSession(user_id=1, username="relatorios", perms=frozenset({"reports", "reports.view"}))


def _make_user(username: str, role: str):
    user = User.objects.create_user(username=username, password="x")
    profile, _ = Profile.objects.get_or_create(user=user)
    profile.role = role
    profile.ativo = True
    profile.save(update_fields=["role", "ativo"])
    return user


class CatalogoTestCase(SimpleTestCase):
    def test_todo_relatorio_tem_gerador(self):
        self.assertEqual({r.slug for r in RELATORIOS}, set(BUILDERS))

    def test_busca_sem_acento(self):
        grupos = buscar_relatorios("frequencia")
        slugs = [r.slug for _, _, itens in grupos for r in itens]
        self.assertIn("frequencia-curso", slugs)
        self.assertIn("tendencia-frequencia", slugs)

    def test_busca_descarta_categorias_vazias(self):
        grupos = buscar_relatorios("encaminhamentos")
        self.assertEqual([cat for cat, _, _ in grupos], ["assistencia"])

    def test_filtro_por_categoria(self):
        grupos = buscar_relatorios("", "saude")
        self.assertEqual(len(grupos), 1)
        self.assertEqual(len(grupos[0][2]), 3)


class HelpersTestCase(SimpleTestCase):
    def test_faixa_etaria(self):
        self.assertEqual(faixa_etaria(None), "Não informada")
        self.assertEqual(faixa_etaria(12), "0-12")
        self.assertEqual(faixa_etaria(13), "13-17")
        self.assertEqual(faixa_etaria(17), "13-17")
        self.assertEqual(faixa_etaria(18), "18+")

    def test_tendencia(self):
        self.assertEqual(tendencia([]), "estável")
        self.assertEqual(tendencia([80]), "estável")
        self.assertEqual(tendencia([60, 70, 80, 90]), "crescente")
        self.assertEqual(tendencia([90, 80, 70, 60]), "decrescente")
        self.assertEqual(tendencia([80, 81, 80, 82]), "estável")

    def test_condicoes_da_ficha(self):
        ficha = FichaSaude(tipo=FichaSaude.Tipo.MEDICA, detalhes={"condicoes_preexistentes": "asma; RINITE,\n"})
        self.assertEqual(condicoes_da_ficha(ficha), ["Asma", "Rinite"])
        self.assertEqual(condicoes_da_ficha(FichaSaude(tipo=FichaSaude.Tipo.MEDICA)), [])


class GerarRelatorioTestCase(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.informatica = Curso.objects.create(nome="Informática", vagas=4)
        cls.musica = Curso.objects.create(nome="Música")
        Curso.objects.create(nome="Teatro", vagas=10)

        ana = Aluno.objects.create(nome="Ana", data_nascimento=datetime.date(2015, 1, 1))
        bia = Aluno.objects.create(nome="Bia", data_nascimento=datetime.date(2010, 6, 1))
        caio = Aluno.objects.create(nome="Caio", data_nascimento=datetime.date(1990, 1, 1))
        Aluno.objects.create(nome="Duda")

        cls.m_ana = Matricula.objects.create(aluno=ana, curso=cls.informatica)
        cls.m_bia = Matricula.objects.create(aluno=bia, curso=cls.informatica)
        Matricula.objects.create(aluno=caio, curso=cls.musica, situacao=Matricula.Situacao.CONCLUIDA)
        Matricula.objects.create(aluno=ana, curso=cls.musica, situacao=Matricula.Situacao.TRANCADA)

        for dia, status_ana, status_bia in [(10, "PRESENTE", "PRESENTE"), (20, "PRESENTE", "AUSENTE")]:
            data = datetime.date(2026, 3, dia)
            Frequencia.objects.create(matricula=cls.m_ana, data=data, status=status_ana)
            Frequencia.objects.create(matricula=cls.m_bia, data=data, status=status_bia)

        AtendimentoSocial.objects.create(aluno=ana, necessidades=["Moradia", "Renda"], encaminhamentos=["CRAS"])
        AtendimentoSocial.objects.create(aluno=bia, necessidades=["Moradia"], encaminhamentos=[])

        FichaSaude.objects.create(
            aluno=ana,
            tipo=FichaSaude.Tipo.MEDICA,
            profissional="Dr. Paulo",
            data=datetime.date(2026, 2, 3),
            detalhes={"condicoes_preexistentes": "Asma"},
        )
        FichaSaude.objects.create(
            aluno=bia,
            tipo=FichaSaude.Tipo.MEDICA,
            profissional="Dr. Paulo",
            data=datetime.date(2026, 3, 3),
            detalhes={"condicoes_preexistentes": "asma, anemia"},
        )
        FichaSaude.objects.create(
            aluno=bia, tipo=FichaSaude.Tipo.ODONTOLOGICA, profissional="Dr. Caio", data=datetime.date(2026, 3, 4)
        )

    def _gerar(self, slug):
        return gerar_relatorio(slug, SESSAO, HOJE)

    def test_sem_permissao(self):
        with self.assertRaises(PermissionDenied):
            gerar_relatorio("alunos-por-curso", AuthSession(user_id=2, username="x"), HOJE)

    def test_slug_desconhecido(self):
        with self.assertRaises(KeyError):
            self._gerar("nao-existe")

    def test_alunos_por_situacao(self):
        r = self._gerar("alunos-por-situacao")
        self.assertEqual(r.rows, [["Ativa", 2, "50%"], ["Trancada", 1, "25%"], ["Concluída", 1, "25%"]])
        self.assertEqual(r.gerado_em, HOJE)

    def test_alunos_por_curso_inclui_cursos_vazios(self):
        r = self._gerar("alunos-por-curso")
        self.assertEqual(r.rows, [["Informática", 2, "100%"], ["Música", 0, "0%"], ["Teatro", 0, "0%"]])
        self.assertIn(("Maior turma", "2"), r.summary)
        self.assertIn(("Menor turma", "0"), r.summary)

    def test_distribuicao_idade(self):
        r = self._gerar("distribuicao-idade")
        contagem = {row[0]: row[1] for row in r.rows}
        self.assertEqual(contagem, {"0-12": 1, "13-17": 1, "18+": 1, "Não informada": 1})

    def test_conclusao_cursos(self):
        r = self._gerar("conclusao-cursos")
        self.assertIn(["Música", 2, 1, "50%"], r.rows)
        self.assertIn(["Informática", 2, 0, "0%"], r.rows)
        self.assertIn(("Taxa geral", "25%"), r.summary)

    def test_ocupacao_vagas(self):
        r = self._gerar("ocupacao-vagas")
        self.assertEqual(
            r.rows,
            [["Informática", 2, 4, "50%"], ["Música", 0, "sem limite", "—"], ["Teatro", 0, 10, "0%"]],
        )
        self.assertIn(("Ocupação geral", "14%"), r.summary)

    def test_frequencia_curso(self):
        r = self._gerar("frequencia-curso")
        self.assertEqual(r.rows, [["Informática", 3, 1, "75%"]])

    def test_faltas_aluno(self):
        r = self._gerar("faltas-aluno")
        self.assertEqual(r.rows, [["Bia", 1, "100%"]])

    def test_tendencia_frequencia(self):
        r = self._gerar("tendencia-frequencia")
        self.assertEqual(r.rows, [["10/03/2026", 2, 2, "100%"], ["20/03/2026", 1, 2, "50%"]])
        self.assertIn(("Tendência", "decrescente"), r.summary)

    def test_atendimentos_necessidade(self):
        r = self._gerar("atendimentos-necessidade")
        self.assertEqual(r.rows[0], ["Moradia", 2, "67%"])
        self.assertEqual(r.rows[1], ["Renda", 1, "33%"])
        self.assertIn(["Transporte", 0, "0%"], r.rows)

    def test_encaminhamentos(self):
        r = self._gerar("encaminhamentos")
        self.assertEqual(r.rows[0], ["CRAS", 1, "100%"])
        self.assertIn(("Total de encaminhamentos", "1"), r.summary)

    def test_saude_especialidade(self):
        r = self._gerar("saude-especialidade")
        self.assertEqual(r.rows[0], ["Médica", 2, "67%"])
        self.assertEqual(r.rows[1], ["Odontológica", 1, "33%"])

    def test_saude_condicoes(self):
        r = self._gerar("saude-condicoes")
        self.assertEqual(r.rows, [["Asma", 2, "67%"], ["Anemia", 1, "33%"]])
        self.assertIn(("Fichas com condição registrada", "2"), r.summary)

    def test_saude_evolucao(self):
        r = self._gerar("saude-evolucao")
        self.assertEqual(r.headers, ["Mês", "Total", "Odontológica", "Psicológica", "Nutricional", "Médica"])
        self.assertEqual(r.rows, [["02/2026", 1, 0, 0, 0, 1], ["03/2026", 2, 1, 0, 0, 1]])

class RelatorioHomonimosTestCase(TestCase):
    @classmethod
    def setUpTestData(cls):
        manha = Curso.objects.create(nome="Informática", vagas=10)
        tarde = Curso.objects.create(nome="Informática", vagas=10)
        cls.manha, cls.tarde = manha, tarde
        for nome in ["Ana", "Bia", "Caio"]:
            Matricula.objects.create(aluno=Aluno.objects.create(nome=nome), curso=manha)

        joao_1 = Aluno.objects.create(nome="João")
        joao_2 = Aluno.objects.create(nome="João")
        m1 = Matricula.objects.create(aluno=joao_1, curso=tarde)
        m2 = Matricula.objects.create(aluno=joao_2, curso=tarde)
        Frequencia.objects.create(matricula=m1, data=datetime.date(2026, 3, 10), status="AUSENTE")
        Frequencia.objects.create(matricula=m1, data=datetime.date(2026, 3, 11), status="AUSENTE")
        Frequencia.objects.create(matricula=m2, data=datetime.date(2026, 3, 10), status="AUSENTE")

    def test_ocupacao_separa_cursos_com_mesmo_nome(self):
        r = gerar_relatorio("ocupacao-vagas", SESSAO, HOJE)
        self.assertEqual([row[1] for row in r.rows], [3, 2])
        self.assertIn(("Vagas ocupadas", "5"), r.summary)
        self.assertIn(("Ocupação geral", "25%"), r.summary)

    def test_ocupacao_sem_matriculas_no_segundo_curso(self):
        Matricula.objects.filter(curso=self.tarde).update(situacao=Matricula.Situacao.TRANCADA)
        r = gerar_relatorio("ocupacao-vagas", SESSAO, HOJE)
        self.assertEqual([row[1] for row in r.rows], [3, 0])
        self.assertIn(("Vagas ocupadas", "3"), r.summary)

    def test_alunos_por_curso_separa_homonimos(self):
        r = gerar_relatorio("alunos-por-curso", SESSAO, HOJE)
        self.assertEqual(r.rows, [["Informática", 3, "60%"], ["Informática", 2, "40%"]])

    def test_faltas_separa_alunos_homonimos(self):
        r = gerar_relatorio("faltas-aluno", SESSAO, HOJE)
        self.assertEqual(r.rows, [["João", 2, "67%"], ["João", 1, "33%"]])
        self.assertIn(("Alunos com falta", "2"), r.summary)
        self.assertEqual([g.key for g in r.groups], ["João", "João"])



class RelatorioViewsTestCase(TestCase):
    def setUp(self):
        self.client.force_login(_make_user("prof", "PROFESSOR"))
        Matricula.objects.create(aluno=Aluno.objects.create(nome="Ana"), curso=Curso.objects.create(nome="Música"))

    def test_index(self):
        response = self.client.get(reverse("relatorios:index") + "?q=saude")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([cat for cat, _, _ in response.context["grupos"]], ["saude"])

    def test_detail(self):
        response = self.client.get(reverse("relatorios:detail", args=["alunos-por-curso"]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["chart"], {"labels": ["Música"], "values": [1]})
        self.assertEqual(response.context["table"].rows[0].cells, ["Música", 1, "100%"])

    def test_detail_desconhecido(self):
        response = self.client.get(reverse("relatorios:detail", args=["nao-existe"]))
        self.assertEqual(response.status_code, 404)

    def test_export_txt(self):
        response = self.client.get(reverse("relatorios:detail", args=["alunos-por-curso"]) + "?export=txt")
        self.assertIn("relatorio_alunos_por_curso.txt", response["Content-Disposition"])
        self.assertIn("Alunos por Curso", response.content.decode("utf-8"))

    def test_export_csv(self):
        response = self.client.get(reverse("relatorios:detail", args=["alunos-por-curso"]) + "?export=csv")
        self.assertIn("relatorio_alunos_por_curso.csv", response["Content-Disposition"])
        self.assertIn("Música;1;100%", response.content.decode("utf-8"))

    def test_usuario_sem_acesso(self):
        self.client.force_login(_make_user("leitor", "USUARIO"))
        response = self.client.get(reverse("relatorios:index"))
        self.assertEqual(response.status_code, 403)
