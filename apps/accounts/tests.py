from django.test import TestCase
from django.core.cache import cache

from django.contrib.auth import get_user_model
from django.urls import reverse

from apps.accounts.models import Profile, UserManagementAudit
from apps.accounts import security as login_security


User = get_user_model()


def _make_user(username: str, role: str, password: str = "Senha@Forte123", **extra):
    user = User.objects.create_user(username=username, password=password, **extra)
    profile = user.profile
    profile.role = role
    profile.ativo = True
    profile.save(update_fields=["role", "ativo"])
    return user


class ProfileSignalTestCase(TestCase):
    def test_new_user_gets_usuario_profile(self):
        user = User.objects.create_user(username="novo", password="x")
        self.assertEqual(user.profile.role, Profile.Role.USUARIO)

    def test_superuser_gets_admin_profile(self):
        user = User.objects.create_superuser(username="root", password="x", email="root@x.com")
        self.assertEqual(user.profile.role, Profile.Role.ADMIN)


class LoginTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.user = _make_user("ana", "PROFESSOR", email="ana@ong.org")

    def test_login_with_email(self):
        response = self.client.post(reverse("accounts:login"), {"identificador": "ana@ong.org", "password": "Senha@Forte123"})
        self.assertRedirects(response, reverse("core:dashboard"), fetch_redirect_response=False)

    def test_login_respects_safe_next(self):
        response = self.client.post(
            reverse("accounts:login") + "?next=/educacao/alunos/",
            {"identificador": "ana", "password": "Senha@Forte123"},
        )
        self.assertEqual(response["Location"], "/educacao/alunos/")

    def test_login_ignores_external_next(self):
        response = self.client.post(
            reverse("accounts:login") + "?next=https://evil.example.com/",
            {"identificador": "ana", "password": "Senha@Forte123"},
        )
        self.assertEqual(response["Location"], reverse("core:dashboard"))

    def test_wrong_password_shows_error(self):
        response = self.client.post(reverse("accounts:login"), {"identificador": "ana", "password": "errada"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["error"], "E-mail/usuário ou senha inválidos.")

    def test_inactive_profile_cannot_login(self):
        self.user.profile.ativo = False
        self.user.profile.save()
        response = self.client.post(reverse("accounts:login"), {"identificador": "ana", "password": "Senha@Forte123"})
        self.assertEqual(response.status_code, 200)
        self.assertNotIn("_auth_user_id", self.client.session)

    def test_lockout_after_repeated_failures(self):
        for _ in range(login_security.max_falhas_conta()):
            self.client.post(reverse("accounts:login"), {"identificador": "ana", "password": "errada"})
        response = self.client.post(reverse("accounts:login"), {"identificador": "ana", "password": "Senha@Forte123"})
        self.assertIn("Muitas tentativas", response.context["error"])
        self.assertTrue(login_security.esta_bloqueado("127.0.0.1", "ana"))

    def test_lockout_by_email_blocks_username(self):
        for _ in range(login_security.max_falhas_conta()):
            self.client.post(reverse("accounts:login"), {"identificador": "ANA@ong.org", "password": "errada"})
        response = self.client.post(reverse("accounts:login"), {"identificador": " Ana ", "password": "Senha@Forte123"})
        self.assertIn("Muitas tentativas", response.context["error"])
        self.assertNotIn("_auth_user_id", self.client.session)

    def test_lockout_counts_email_and_username_together(self):
        for i in range(login_security.max_falhas_conta()):
            identificador = "ana" if i % 2 else "ana@ong.org"
            self.client.post(reverse("accounts:login"), {"identificador": identificador, "password": "errada"})
        self.assertTrue(login_security.esta_bloqueado("127.0.0.1", "ana@ong.org"))
        self.assertTrue(login_security.esta_bloqueado("127.0.0.1", "ANA"))
        self.assertFalse(login_security.esta_bloqueado("127.0.0.1", "bia"))

    def test_successful_login_clears_failures(self):
        for _ in range(login_security.max_falhas_conta() - 1):
            self.client.post(reverse("accounts:login"), {"identificador": "ana", "password": "errada"})
        self.client.post(reverse("accounts:login"), {"identificador": "ana@ong.org", "password": "Senha@Forte123"})
        self.client.logout()
        self.client.post(reverse("accounts:login"), {"identificador": "ana", "password": "errada"})
        self.assertFalse(login_security.esta_bloqueado("127.0.0.1", "ana"))

    def test_logout(self):
        self.client.force_login(self.user)
        response = self.client.post(reverse("accounts:logout"))
        self.assertRedirects(response, reverse("accounts:login"), fetch_redirect_response=False)


class RegisterTestCase(TestCase):
    def test_register_creates_usuario(self):
        response = self.client.post(
            reverse("accounts:register"),
            {
                "nome": "Carla Souza",
                "email": "Carla@Ong.org",
                "password1": "Senha@Forte123",
                "password2": "Senha@Forte123",
            },
        )
        self.assertRedirects(response, reverse("accounts:login"), fetch_redirect_response=False)
        user = User.objects.get(username="carla@ong.org")
        self.assertEqual(user.first_name, "Carla")
        self.assertEqual(user.last_name, "Souza")
        self.assertEqual(user.profile.role, Profile.Role.USUARIO)

    def test_register_rejects_mismatched_passwords(self):
        response = self.client.post(
            reverse("accounts:register"),
            {"nome": "X", "email": "x@ong.org", "password1": "Senha@Forte123", "password2": "Outra@Senha123"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn("password2", response.context["form"].errors)

    def test_register_rejects_duplicate_email(self):
        _make_user("dup", "USUARIO", email="dup@ong.org")
        response = self.client.post(
            reverse("accounts:register"),
            {"nome": "X", "email": "dup@ong.org", "password1": "Senha@Forte123", "password2": "Senha@Forte123"},
        )
        self.assertIn("email", response.context["form"].errors)


class MeuPerfilTestCase(TestCase):
    def setUp(self):
        self.user = _make_user("perfil", "ASSISTENTE_SOCIAL", email="perfil@ong.org")
        self.client.force_login(self.user)

    def test_shows_role_description(self):
        response = self.client.get(reverse("accounts:meu_perfil"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["role_label"], "Assistente Social")
        self.assertIn("Registrar atendimentos sociais", response.context["role_descricao"])

    def test_update_profile(self):
        response = self.client.post(
            reverse("accounts:meu_perfil"),
            {"acao": "perfil", "nome": "Maria Lima", "email": "maria@ong.org", "telefone": "98988887777"},
        )
        self.assertRedirects(response, reverse("accounts:meu_perfil"), fetch_redirect_response=False)
        self.user.refresh_from_db()
        self.assertEqual(self.user.get_full_name(), "Maria Lima")
        self.assertEqual(Profile.objects.get(user=self.user).telefone, "(98) 9 8888-7777")

    def test_change_password_requires_current(self):
        response = self.client.post(
            reverse("accounts:meu_perfil"),
            {"acao": "senha", "senha_atual": "errada", "password1": "Nova@Senha456", "password2": "Nova@Senha456"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context["senha_form"].errors)

    def test_change_password(self):
        response = self.client.post(
            reverse("accounts:meu_perfil"),
            {"acao": "senha", "senha_atual": "Senha@Forte123", "password1": "Nova@Senha456", "password2": "Nova@Senha456"},
        )
        self.assertEqual(response.status_code, 302)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("Nova@Senha456"))


class UserManagementTestCase(TestCase):
    def setUp(self):
        self.admin = _make_user("admin", "ADMIN", email="admin@ong.org")
        self.client.force_login(self.admin)

    def test_list_requires_admin(self):
        self.client.force_login(_make_user("prof", "PROFESSOR"))
        response = self.client.get(reverse("accounts:usuarios_list"))
        self.assertEqual(response.status_code, 403)

    def test_list_filters_by_role(self):
        _make_user("prof", "PROFESSOR", first_name="Paulo")
        _make_user("saude", "PROFISSIONAL_SAUDE", first_name="Sara")
        response = self.client.get(reverse("accounts:usuarios_list") + "?role=PROFESSOR")
        self.assertEqual(response.status_code, 200)
        nomes = [row.cells[0] for row in response.context["table"].rows]
        self.assertEqual(nomes, ["Paulo"])

    def test_create_user_logs_audit(self):
        response = self.client.post(
            reverse("accounts:usuario_create"),
            {
                "nome": "Paula Reis",
                "email": "paula@ong.org",
                "telefone": "",
                "role": "PROFESSOR",
                "ativo": "on",
                "password1": "Senha@Forte123",
                "password2": "Senha@Forte123",
            },
        )
        self.assertRedirects(response, reverse("accounts:usuarios_list"), fetch_redirect_response=False)
        user = User.objects.get(email="paula@ong.org")
        self.assertEqual(user.profile.role, Profile.Role.PROFESSOR)
        self.assertTrue(
            UserManagementAudit.objects.filter(target=user, action=UserManagementAudit.Action.CREATE).exists()
        )

    def test_update_role_without_password(self):
        user = _make_user("edit", "USUARIO", email="edit@ong.org", first_name="Edu")
        response = self.client.post(
            reverse("accounts:usuario_update", args=[user.pk]),
            {"nome": "Edu", "email": "edit@ong.org", "role": "ASSISTENTE_SOCIAL", "ativo": "on"},
        )
        self.assertEqual(response.status_code, 302)
        user.refresh_from_db()
        self.assertEqual(Profile.objects.get(user=user).role, Profile.Role.ASSISTENTE_SOCIAL)
        self.assertTrue(user.check_password("Senha@Forte123"))

    def test_admin_cannot_demote_self(self):
        response = self.client.post(
            reverse("accounts:usuario_update", args=[self.admin.pk]),
            {"nome": "Admin", "email": "admin@ong.org", "role": "USUARIO", "ativo": "on"},
        )
        self.assertEqual(response.status_code, 302)
        self.admin.refresh_from_db()
        self.assertEqual(Profile.objects.get(user=self.admin).role, Profile.Role.ADMIN)

    def test_admin_cannot_delete_self(self):
        self.client.post(reverse("accounts:usuario_delete", args=[self.admin.pk]))
        self.assertTrue(User.objects.filter(pk=self.admin.pk).exists())

    def test_delete_user(self):
        user = _make_user("apagar", "USUARIO")
        response = self.client.post(reverse("accounts:usuario_delete", args=[user.pk]))
        self.assertEqual(response.status_code, 302)
        self.assertFalse(User.objects.filter(pk=user.pk).exists())
        self.assertTrue(
            UserManagementAudit.objects.filter(target_username="apagar", action=UserManagementAudit.Action.DELETE).exists()
        )
