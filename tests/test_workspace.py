"""
Workspace: session-driven loading, the admin impersonation overlay and logout.
"""
import pytest

from companion.core.errors import PermissionDeniedError
from companion.repositories.memory import DEMO_OWNER_ID
from companion.schemas.practice import PatientCreate, UserRole
from companion.services.identity import IdentityProvider
from companion.services.views import DashboardProjection, View
from companion.services.workspace import Workspace

from conftest import TODAY


@pytest.fixture
async def people(repo, fast_hashing):
    await repo.create_account(email="alice@example.com", full_name="Dr. Alice", password_hash="plain$secret1",
                              user_id=DEMO_OWNER_ID)
    await repo.create_account(email="bob@example.com", full_name="Dr. Bob", password_hash="plain$secret2",
                              user_id="psy_2")
    await repo.create_account(email="root@example.com", full_name="Admin", password_hash="plain$secret3",
                              role=UserRole.ADMIN, user_id="admin_1")
    await repo.create_patient("psy_2", PatientCreate(name="Bob's Patient"))


@pytest.fixture
async def workspace(repo, accounts, clock, people):
    ws = Workspace(IdentityProvider(accounts), repo, clock=clock)
    await ws.start()
    yield ws
    ws.close()


@pytest.mark.unit
class TestSession:

    async def test_signed_out_workspace_is_empty(self, workspace):
        assert workspace.effective_user_id is None
        assert workspace.store.patients == []
        assert workspace.display_name == "Doctor Friend"

    async def test_sign_in_loads_own_data(self, workspace):
        await workspace.identity.sign_in("alice@example.com", "secret1")

        assert workspace.effective_user_id == DEMO_OWNER_ID
        assert workspace.profile.full_name == "Dr. Alice"
        assert workspace.display_name == "Dr. Alice"
        assert len(workspace.store.patients) == 3
        assert isinstance(workspace.render(TODAY), DashboardProjection)

    async def test_existing_session_is_picked_up_on_start(self, repo, accounts, clock, people):
        identity = IdentityProvider(accounts)
        await identity.sign_in("bob@example.com", "secret2")

        ws = Workspace(identity, repo, clock=clock)
        await ws.start()
        assert [p.name for p in ws.store.patients] == ["Bob's Patient"]
        ws.close()

    async def test_logout_clears_everything(self, workspace):
        await workspace.identity.sign_in("root@example.com", "secret3")
        await workspace.impersonate(DEMO_OWNER_ID)
        workspace.navigate(View.CALENDAR)

        await workspace.logout()

        assert workspace.session is None
        assert workspace.impersonated_user_id is None
        assert workspace.effective_user_id is None
        assert workspace.store.patients == [] and workspace.store.appointments == []
        assert workspace.router.current == View.DASHBOARD

    async def test_closed_workspace_ignores_session_changes(self, workspace):
        workspace.close()
        await workspace.identity.sign_in("alice@example.com", "secret1")
        assert workspace.session is None
        assert workspace.store.patients == []


@pytest.mark.unit
class TestImpersonation:

    async def test_switch_a_to_b_leaves_no_a_entities(self, workspace, repo):
        await workspace.identity.sign_in("root@example.com", "secret3")

        await workspace.impersonate(DEMO_OWNER_ID)
        a_ids = {p.id for p in workspace.store.patients} | {a.id for a in workspace.store.appointments}
        assert len(a_ids) == 6

        await workspace.impersonate("psy_2")
        b_ids = {p.id for p in workspace.store.patients} | {a.id for a in workspace.store.appointments}

        assert workspace.effective_user_id == "psy_2"
        assert not (a_ids & b_ids)
        assert [p.name for p in workspace.store.patients] == ["Bob's Patient"]

    async def test_clearing_override_reverts_to_own_identity(self, workspace):
        await workspace.identity.sign_in("root@example.com", "secret3")
        await workspace.impersonate(DEMO_OWNER_ID)

        await workspace.impersonate(None)

        assert workspace.is_impersonating is False
        assert workspace.effective_user_id == "admin_1"
        assert workspace.store.patients == []

    async def test_non_admin_cannot_impersonate(self, workspace):
        await workspace.identity.sign_in("alice@example.com", "secret1")

        with pytest.raises(PermissionDeniedError):
            await workspace.impersonate("psy_2")
        with pytest.raises(PermissionDeniedError):
            await workspace.list_profiles()
        assert workspace.effective_user_id == DEMO_OWNER_ID

    async def test_revoked_admin_is_refused_at_point_of_action(self, workspace, repo):
        await workspace.identity.sign_in("root@example.com", "secret3")
        assert workspace.profile.is_admin

        repo._accounts["admin_1"].profile.role = UserRole.PSYCHOLOGIST

        with pytest.raises(PermissionDeniedError):
            await workspace.impersonate(DEMO_OWNER_ID)

    async def test_admin_lists_profiles_by_name(self, workspace):
        await workspace.identity.sign_in("root@example.com", "secret3")
        names = [p.full_name for p in await workspace.list_profiles()]
        assert names == ["Admin", "Dr. Alice", "Dr. Bob"]

    async def test_mutations_use_the_effective_user(self, workspace, repo):
        await workspace.identity.sign_in("root@example.com", "secret3")
        await workspace.impersonate("psy_2")

        result = await workspace.create_patient(PatientCreate(name="Added by admin"))

        assert result.ok
        assert {p.name for p in await repo.list_patients("psy_2")} == {"Bob's Patient", "Added by admin"}
        assert await repo.list_patients("admin_1") == []

    async def test_override_does_not_survive_a_different_sign_in(self, workspace):
        await workspace.identity.sign_in("root@example.com", "secret3")
        await workspace.impersonate(DEMO_OWNER_ID)

        await workspace.identity.sign_in("bob@example.com", "secret2")

        assert workspace.profile.is_admin is False
        assert workspace.is_impersonating is False
        assert workspace.effective_user_id == "psy_2"
        assert [p.name for p in workspace.store.patients] == ["Bob's Patient"]

    async def test_reload_drops_override_when_role_is_gone(self, workspace):
        await workspace.identity.sign_in("root@example.com", "secret3")
        await workspace.impersonate(DEMO_OWNER_ID)
        workspace.profile = workspace.profile.model_copy(update={"role": UserRole.PSYCHOLOGIST})

        await workspace.reload()

        assert workspace.effective_user_id == "admin_1"
        assert workspace.store.patients == []
