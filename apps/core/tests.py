import datetime
import os
import tempfile
from dataclasses import FrozenInstanceError
from pathlib import Path
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.http import HttpResponse
from django.template import Context, Template
from django.test import RequestFactory, SimpleTestCase, TestCase
from django.urls import reverse

from apps.accounts.models import Profile
from apps.core.aggregation import GroupSummary, aggregate, aggregate_multi, breakdown, count_of, percentage, with_all_keys
from apps.core.exports import export_csv, export_table, export_xlsx, render_text_report
from apps.core.masks import calcular_idade, format_cpf, format_phone, only_digits
from apps.core.middleware import AuthSessionMiddleware, RBACMiddleware
from apps.core.models import Evento
from apps.core.rbac import can, get_user_perms, perms_for_role
from apps.core.security import decrypt_cpf, mask_cpf
from apps.core.session import AuthSession, get_session
from apps.core.ui.tables import Cell, Column, build_table, derive, field
from apps.core.views_dashboard import build_dashboard
from apps.educacao.models import Aluno, Curso, Frequencia, Matricula
from config.env import load_dotenv_if_exists


User = get_user_model()


def _make_user(username: str, role: str, **extra):
    user = User.objects.create_user(username=username, password="x", **extra)
    profile, _ = Profile.objects.get_or_create(user=user)
    profile.role = role
    profile.ativo = True
    profile.save(update_fields=["role", "ativo"])
    return User.objects.select_related("profile").get(pk=user.pk)


class TableBuildTestCase(SimpleTestCase):
    columns = [
        Column("Nome", field("nome")),
        Column("Idade", field("idade")),
    ]

    def test_loading_wins_over_data(self):
        table = build_table(self.columns, [{"id": 1, "nome": "Ana", "idade": 30}], lambda r: str(r["id"]), is_loading=True)
        self.assertEqual(len(table.rows), 1)
        self.assertEqual(table.rows[0].kind, "loading")
        self.assertEqual(table.colspan, 2)
        self.assertTrue(table.is_loading)

    def test_empty_uses_default_message(self):
        table = build_table(self.columns, [], lambda r: str(r["id"]))
        self.assertEqual(table.rows[0].kind, "empty")
        self.assertEqual(table.rows[0].message, "Nenhum dado encontrado")

    def test_empty_uses_custom_message(self):
        table = build_table(self.columns, [], lambda r: str(r["id"]), empty_message="No records")
        self.assertEqual(table.rows[0].message, "No records")
        self.assertTrue(table.is_empty)

    def test_empty_message_may_be_blank(self):
        table = build_table(self.columns, [], lambda r: str(r["id"]), empty_message="")
        self.assertEqual(table.rows[0].kind, "empty")
        self.assertEqual(table.rows[0].message, "")

    def test_rows_keep_input_order(self):
        data = [{"id": 2, "nome": "Bruno", "idade": 25}, {"id": 1, "nome": "Ana", "idade": 30}]
        table = build_table(self.columns, data, lambda r: str(r["id"]))
        self.assertEqual([r.cells for r in table.rows], [["Bruno", 25], ["Ana", 30]])
        self.assertEqual([r.key for r in table.rows], ["2", "1"])
        self.assertEqual([h["label"] for h in table.headers], ["Nome", "Idade"])

    def test_derive_accessor_and_nested_cells(self):
        columns = [
            Column("Nome", derive(lambda r: r["nome"].upper())),
            Column("Tags", derive(lambda r: [Cell(text=t, badge="info") for t in r["tags"]])),
        ]
        table = build_table(columns, [{"id": 1, "nome": "ana", "tags": ["a", "b"]}], lambda r: str(r["id"]))
        self.assertEqual(table.rows[0].cells[0], "ANA")
        self.assertEqual([c.text for c in table.rows[0].cells[1]], ["a", "b"])

    def test_field_accessor_on_objects(self):
        class Obj:
            nome = "Ana"
            idade = 30
            pk = 1

        table = build_table(self.columns, [Obj()], lambda o: str(o.pk))
        self.assertEqual(table.rows[0].cells, ["Ana", 30])

    def test_row_activate_passes_full_record(self):
        clicked = []
        record = {"id": 7, "nome": "Ana", "idade": 30}
        table = build_table(self.columns, [record], lambda r: str(r["id"]), on_row_click=clicked.append)
        row = table.rows[0]
        self.assertTrue(row.clickable)
        row.activate()
        self.assertEqual(clicked, [record])

    def test_rows_not_clickable_without_handler(self):
        table = build_table(self.columns, [{"id": 1, "nome": "Ana", "idade": 1}], lambda r: str(r["id"]))
        self.assertFalse(table.rows[0].clickable)
        self.assertIsNone(table.rows[0].activate())

    def test_duplicate_keys_log_warning(self):
        data = [{"id": 1, "nome": "Ana", "idade": 1}, {"id": 1, "nome": "Bia", "idade": 2}]
        with self.assertLogs("apps.core.ui.tables", level="WARNING"):
            table = build_table(self.columns, data, lambda r: str(r["id"]))
        self.assertEqual(len(table.rows), 2)

    def test_accessor_error_propagates(self):
        columns = [Column("X", derive(lambda r: 1 / 0))]
        with self.assertRaises(ZeroDivisionError):
            build_table(columns, [{"id": 1}], lambda r: str(r["id"]))

    def test_records_are_not_mutated(self):
        data = [{"id": 1, "nome": "Ana", "idade": 1}]
        build_table(self.columns, data, lambda r: str(r["id"]))
        self.assertEqual(data, [{"id": 1, "nome": "Ana", "idade": 1}])


class TableRenderTestCase(SimpleTestCase):
    def _render(self, table):
        return Template("{% load amar_ui %}{% data_table table %}").render(Context({"table": table}))

    def test_renders_empty_row_with_colspan(self):
        table = build_table([Column("A", field("a")), Column("B", field("b"))], [], str, empty_message="Vazio")
        html = self._render(table)
        self.assertIn('colspan="2"', html)
        self.assertIn("Vazio", html)

    def test_renders_link_and_badge_cells(self):
        columns = [Column("Nome", derive(lambda r: Cell(text=r["nome"], url="/x/"))), Column("S", derive(lambda r: Cell(text="Ativo", badge="success")))]
        html = self._render(build_table(columns, [{"nome": "Ana"}], lambda r: r["nome"]))
        self.assertIn('<a href="/x/"', html)
        self.assertIn("badge--success", html)

    def test_clickable_row_has_href(self):
        columns = [Column("Nome", field("nome"))]
        table = build_table(columns, [{"nome": "Ana"}], lambda r: r["nome"], on_row_click=lambda r: f"/alunos/{r['nome']}/")
        self.assertIn('data-href="/alunos/Ana/"', self._render(table))


class AggregationTestCase(SimpleTestCase):
    def test_percentage_rounds_half_up(self):
        self.assertEqual(percentage(2, 3), 67)
        self.assertEqual(percentage(1, 3), 33)
        self.assertEqual(percentage(1, 8), 13)
        self.assertEqual(percentage(1, 200), 1)
        self.assertEqual(percentage(0, 0), 0)

    def test_aggregate_presence(self):
        records = [{"s": "present"}, {"s": "absent"}, {"s": "present"}]
        result = aggregate(records, lambda r: r["s"])
        self.assertEqual(
            result,
            [GroupSummary("present", 2, 67), GroupSummary("absent", 1, 33)],
        )

    def test_aggregate_empty(self):
        self.assertEqual(aggregate([], lambda r: r), [])

    def test_ties_keep_first_appearance(self):
        result = aggregate(["b", "a", "a", "b", "c"], lambda r: r)
        self.assertEqual([g.key for g in result], ["b", "a", "c"])

    def test_counts_sum_to_total(self):
        records = list("aabbbcdddd")
        result = aggregate(records, lambda r: r)
        self.assertEqual(sum(g.count for g in result), len(records))

    def test_empty_key_is_a_group(self):
        result = aggregate(["", "x", ""], lambda r: r)
        self.assertEqual(result[0], GroupSummary("", 2, 67))
        self.assertEqual(result[0].as_row(), ["—", "2", "67%"])

    def test_key_fn_error_propagates(self):
        def boom(_):
            raise ValueError("falhou")

        with self.assertRaises(ValueError):
            aggregate([1, 2], boom)

    def test_aggregate_multi_uses_key_total(self):
        records = [["Moradia", "Renda"], ["Moradia"], []]
        result = aggregate_multi(records, lambda r: r)
        self.assertEqual(result, [GroupSummary("Moradia", 2, 67), GroupSummary("Renda", 1, 33)])

    def test_breakdown_groups_in_aggregate_order(self):
        records = [("A", "P"), ("B", "P"), ("B", "F"), ("B", "P")]
        result = breakdown(records, lambda r: r[0], lambda r: r[1])
        self.assertEqual(list(result), ["B", "A"])
        self.assertEqual(result["B"], [GroupSummary("P", 2, 67), GroupSummary("F", 1, 33)])

    def test_with_all_keys_and_count_of(self):
        groups = with_all_keys(aggregate(["x"], lambda r: r), ["y", "x", "z"])
        self.assertEqual([g.key for g in groups], ["x", "y", "z"])
        self.assertEqual(count_of(groups, "x"), 1)
        self.assertEqual(count_of(groups, "z"), 0)
        self.assertEqual(count_of(groups, "nada"), 0)

    def test_with_all_keys_ignores_repeated_keys(self):
        groups = with_all_keys(aggregate(["x"], lambda r: r), ["y", "y", "x", "z", "z"])
        self.assertEqual([g.key for g in groups], ["x", "y", "z"])
        self.assertEqual(with_all_keys([], ["a", "a"]), [GroupSummary("a", 0, 0)])


class MasksTestCase(SimpleTestCase):
    def test_cpf_mask_is_progressive(self):
        self.assertEqual(format_cpf("12345678901"), "123.456.789-01")
        self.assertEqual(format_cpf("1234"), "123.4")
        self.assertEqual(format_cpf("123456789"), "123.456.789")
        self.assertEqual(format_cpf(""), "")

    def test_phone_mask(self):
        self.assertEqual(format_phone("9832221100"), "(98) 3222-1100")
        self.assertEqual(format_phone("98988887777"), "(98) 9 8888-7777")
        self.assertEqual(only_digits("(98) 9 8888-7777"), "98988887777")

    def test_idade(self):
        nasc = datetime.date(2010, 6, 15)
        self.assertEqual(calcular_idade(nasc, datetime.date(2024, 6, 14)), 13)
        self.assertEqual(calcular_idade(nasc, datetime.date(2024, 6, 15)), 14)
        self.assertIsNone(calcular_idade(None))

    def test_mask_cpf(self):
        self.assertEqual(mask_cpf("123.456.789-01"), "***.***.***-01")
        self.assertEqual(mask_cpf("123"), "")


class CPFSecurityTestCase(TestCase):
    @patch.dict(
        "os.environ",
        {
            "DJANGO_CPF_HASH_KEY": "hash-key-tests",
            "DJANGO_CPF_ENCRYPTION_KEY": "enc-key-tests",
        },
        clear=False,
    )
    def test_aluno_save_masks_and_protects_cpf(self):
        aluno = Aluno.objects.create(nome="Ana", cpf="123.456.789-01")
        aluno.refresh_from_db()
        self.assertEqual(aluno.cpf, "***.***.***-01")
        self.assertEqual(aluno.cpf_last4, "8901")
        self.assertTrue(aluno.cpf_hash)
        self.assertEqual(decrypt_cpf(aluno.cpf_enc), "12345678901")
        self.assertEqual(aluno.cpf_display, "123.456.789-01")


class RBACTestCase(TestCase):
    def test_role_matrix(self):
        self.assertIn("frequencia.manage", perms_for_role("PROFESSOR"))
        self.assertIn("educacao", perms_for_role("PROFESSOR"))
        self.assertNotIn("saude", perms_for_role("PROFESSOR"))
        self.assertEqual(perms_for_role("USUARIO"), {"educacao", "educacao.view"})

    def test_inactive_profile_has_no_perms(self):
        user = _make_user("inativo", "PROFESSOR")
        user.profile.ativo = False
        user.profile.save()
        user = User.objects.select_related("profile").get(pk=user.pk)
        self.assertEqual(get_user_perms(user), set())

    def test_superuser_is_admin(self):
        user = User.objects.create_superuser(username="root", password="x", email="r@x.com")
        self.assertTrue(can(user, "accounts.manage_users"))
        session = AuthSession.from_user(user)
        self.assertEqual(session.role, "ADMIN")

    def test_session_for_anonymous(self):
        session = AuthSession.from_user(AnonymousUser())
        self.assertFalse(session.is_authenticated)
        self.assertFalse(session.can("educacao.view"))

    def test_session_is_immutable(self):
        session = AuthSession.from_user(_make_user("prof", "PROFESSOR", first_name="Paula"))
        self.assertEqual(session.display_name, "Paula")
        self.assertEqual(session.role_label, "Professor")
        with self.assertRaises(FrozenInstanceError):
            session.role = "ADMIN"


class MiddlewareTestCase(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def _call(self, path, user):
        request = self.factory.get(path)
        request.user = user
        AuthSessionMiddleware(lambda r: HttpResponse("ok"))(request)
        return RBACMiddleware(lambda r: HttpResponse("ok"))(request)

    def test_auth_session_attached(self):
        request = self.factory.get("/")
        request.user = _make_user("sess", "PROFESSOR")
        AuthSessionMiddleware(lambda r: HttpResponse("ok"))(request)
        self.assertEqual(get_session(request).role, "PROFESSOR")

    def test_blocks_saude_for_professor(self):
        response = self._call(reverse("saude:ficha_list"), _make_user("prof_mw", "PROFESSOR"))
        self.assertEqual(response.status_code, 403)

    def test_blocks_users_for_professor(self):
        response = self._call(reverse("accounts:usuarios_list"), _make_user("prof_users", "PROFESSOR"))
        self.assertEqual(response.status_code, 403)

    def test_allows_profile_page_for_everyone(self):
        response = self._call(reverse("accounts:meu_perfil"), _make_user("usr_perfil", "USUARIO"))
        self.assertEqual(response.status_code, 200)

    def test_allows_saude_for_health_professional(self):
        response = self._call(reverse("saude:ficha_list"), _make_user("saude_mw", "PROFISSIONAL_SAUDE"))
        self.assertEqual(response.status_code, 200)

    def test_redirects_anonymous(self):
        response = self._call(reverse("educacao:aluno_list"), AnonymousUser())
        self.assertEqual(response.status_code, 302)
        self.assertIn("/accounts/login/", response["Location"])

    def test_anonymous_may_reach_login_and_register(self):
        self.assertEqual(self._call("/accounts/login/", AnonymousUser()).status_code, 200)
        self.assertEqual(self._call("/accounts/cadastro/", AnonymousUser()).status_code, 200)

    def test_allows_static_paths(self):
        self.assertEqual(self._call("/static/app.css", AnonymousUser()).status_code, 200)


class ExportsTestCase(SimpleTestCase):
    def test_csv_has_bom_and_semicolons(self):
        response = export_csv("x.csv", ["A", "B"], [[1, True], [None, "z"]])
        content = response.content.decode("utf-8")
        self.assertTrue(content.startswith("\ufeff"))
        self.assertIn("A;B", content)
        self.assertIn("1;Sim", content)
        self.assertIn('attachment; filename="x.csv"', response["Content-Disposition"])

    def test_xlsx(self):
        response = export_xlsx("x.xlsx", "Título", ["A"], [[1]])
        self.assertEqual(response.content[:2], b"PK")

    def test_text_report(self):
        text = render_text_report("Relatório", "Desc", ["Curso", "Alunos"], [["Música", 3]], [("Total", "3")])
        self.assertIn("# Relatório", text)
        self.assertIn("Total: 3", text)
        self.assertIn("| Música | 3 |", text)

    def test_unknown_format(self):
        self.assertIsNone(export_table(None, "doc", basename="x", title="t", headers=[], rows=[]))


class DashboardTestCase(TestCase):
    def setUp(self):
        self.hoje = datetime.date(2025, 3, 10)
        self.admin = _make_user("admin_dash", "ADMIN", first_name="Ana")
        self.curso = Curso.objects.create(nome="Música")
        self.outro = Curso.objects.create(nome="Dança")
        alunos = [Aluno.objects.create(nome=n) for n in ("Bruno", "Carla", "Davi")]
        self.matriculas = [Matricula.objects.create(aluno=a, curso=self.curso) for a in alunos[:2]]
        Matricula.objects.create(aluno=alunos[2], curso=self.outro)
        Frequencia.objects.create(matricula=self.matriculas[0], data=self.hoje, status=Frequencia.Status.PRESENTE)
        Frequencia.objects.create(matricula=self.matriculas[1], data=self.hoje, status=Frequencia.Status.AUSENTE)
        Evento.objects.create(titulo="Antigo", data=self.hoje - datetime.timedelta(days=1))
        Evento.objects.create(titulo="Festa", data=self.hoje)

    def test_build_dashboard(self):
        painel = build_dashboard(AuthSession.from_user(self.admin), self.hoje)
        stats = {s["label"]: s["value"] for s in painel.stats}
        self.assertEqual(stats["Alunos"], 3)
        self.assertEqual(stats["Cursos"], 2)
        self.assertEqual(stats["Frequência média"], "50%")
        self.assertEqual([e.titulo for e in painel.eventos], ["Festa"])
        self.assertEqual(painel.alunos_por_curso[0], GroupSummary("Música", 2, 67))
        self.assertTrue(painel.can_manage_eventos)
        self.assertLessEqual(len(painel.atividades), 9)

    def test_dashboard_view(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse("core:dashboard"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["chart_cursos"]["labels"], ["Música", "Dança"])

    def test_professor_cannot_create_event(self):
        self.client.force_login(_make_user("prof_ev", "PROFESSOR"))
        response = self.client.post(reverse("core:evento_create"), {"titulo": "X", "data": "2025-03-20"})
        self.assertEqual(response.status_code, 403)

    def test_admin_creates_event(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse("core:evento_create"), {"titulo": "Reunião", "data": "2025-03-20", "local": "Sede"})
        self.assertEqual(response.status_code, 302)
        self.assertTrue(Evento.objects.filter(titulo="Reunião").exists())


class DotenvTestCase(SimpleTestCase):
    def test_env_file_does_not_override_existing_vars(self):
        with tempfile.TemporaryDirectory() as tmp:
            Path(tmp, ".env").write_text(
                '# comentário\nAMAR_ORG_NAME="ONG do .env"\nAMAR_TESTE_NOVA=valor\nlinha invalida\n',
                encoding="utf-8",
            )
            with patch.dict(os.environ, {"AMAR_ORG_NAME": "ONG do ambiente"}):
                load_dotenv_if_exists(Path(tmp))
                self.assertEqual(os.environ["AMAR_ORG_NAME"], "ONG do ambiente")
                self.assertEqual(os.environ["AMAR_TESTE_NOVA"], "valor")
            self.assertNotIn("AMAR_TESTE_NOVA", os.environ)

    def test_missing_env_file_is_ignored(self):
        with tempfile.TemporaryDirectory() as tmp:
            load_dotenv_if_exists(Path(tmp))
