import pytest
from concurrent.futures import ThreadPoolExecutor
from database import KEY_POSTS, KEY_SESSION
from errors import (
    ValidationError, PermissionDenied, NotFoundError, ConflictError, AuthError,
    MissingField, EmptyText, UnknownHobby, GuestForbidden, RoleForbidden, Forbidden,
    NotFound, DuplicateEmail, InvalidCredentials, Banned,
)
from models import Role, SessionMode, Session, Post
from seed import seed
import permissions


@pytest.fixture
def seeded(registry, content):
    seed(registry, content)


@pytest.fixture
def user_session(registry, sessions):
    registry.register("Rahul", "rahul@example.com", "pw", "user")
    return sessions.login("rahul@example.com", "pw")


@pytest.fixture
def organizer_session(seeded, sessions):
    return sessions.login("org@hub.com", "org123")


@pytest.fixture
def admin_session(seeded, sessions):
    return sessions.login("admin@hub.com", "admin123")


def test_empty_store_reads_as_empty(store, content, registry, sessions):
    assert content.list_posts("coding") == []
    assert content.list_events("coding") == []
    assert content.list_resources("coding") == []
    assert registry.list_accounts() == []
    assert sessions.current_session() is None


def test_unreadable_value_reads_as_default(store, content):
    store.conn.execute("INSERT INTO kv (key, value) VALUES (?, ?)", (KEY_POSTS, "{not json"))
    assert content.all_posts() == []


def test_email_uniqueness(registry):
    registry.register("Priya", "priya@example.com", "pw", "user")
    with pytest.raises(DuplicateEmail):
        registry.register("Priya Two", "  PRIYA@example.com ", "pw2", "organizer")
    assert len(registry.list_accounts()) == 1
    assert issubclass(DuplicateEmail, ConflictError)


@pytest.mark.parametrize("name,email,password", [
    ("", "a@b.com", "pw"),
    ("A", "  ", "pw"),
    ("A", "a@b.com", ""),
])
def test_register_missing_field(registry, name, email, password):
    with pytest.raises(MissingField):
        registry.register(name, email, password, "user")


def test_register_rejects_guest_role(registry):
    with pytest.raises(ValidationError):
        registry.register("G", "g@b.com", "pw", "guest")


def test_password_is_not_stored_in_plaintext(registry):
    account = registry.register("A", "a@b.com", "secret", "user")
    assert account.password != "secret"
    assert registry.find_by_email("A@B.COM").id == account.id


def test_login_snapshot(sessions, organizer_session):
    assert organizer_session.role is Role.ORGANIZER
    assert organizer_session.mode is SessionMode.AUTH
    assert organizer_session.hobbies == ["music", "painting"]
    assert sessions.current_session() == organizer_session


def test_login_invalid_credentials(seeded, sessions):
    with pytest.raises(InvalidCredentials):
        sessions.login("admin@hub.com", "nope")
    with pytest.raises(InvalidCredentials):
        sessions.login("nobody@hub.com", "admin123")
    assert sessions.current_session() is None


def test_banned_email_cannot_login(seeded, registry, sessions):
    registry.toggle_ban("admin@hub.com")
    with pytest.raises(Banned):
        sessions.login("admin@hub.com", "admin123")
    with pytest.raises(AuthError):
        sessions.login("admin@hub.com", "wrong")


def test_ban_toggle_is_self_inverse(registry):
    assert registry.is_banned("x@hub.com") is False
    assert registry.toggle_ban("x@hub.com") is True
    assert registry.toggle_ban("X@hub.com") is False
    assert registry.is_banned("x@hub.com") is False


def test_guest_session(sessions, registry):
    guest = sessions.enter_guest()
    assert guest.role is Role.GUEST
    assert guest.mode is SessionMode.GUEST
    assert guest.hobbies == ["coding", "music"]
    assert registry.list_accounts() == []


def test_logout_is_idempotent(store, sessions, user_session):
    sessions.logout()
    sessions.logout()
    assert store.read(KEY_SESSION) is None


def test_single_active_session(sessions, user_session):
    guest = sessions.enter_guest()
    assert sessions.current_session().sid == guest.sid


def test_select_hobbies_persists_for_accounts(sessions, registry, user_session):
    sessions.select_hobbies(user_session, ["gaming", "gaming", "coding"])
    assert registry.find_by_email("rahul@example.com").hobbies == ["gaming", "coding"]
    assert sessions.current_session().hobbies == ["gaming", "coding"]


def test_select_hobbies_validation(sessions, user_session):
    with pytest.raises(MissingField):
        sessions.select_hobbies(user_session, [])
    with pytest.raises(UnknownHobby):
        sessions.select_hobbies(user_session, ["knitting"])


def test_guest_may_clear_hobbies(sessions):
    guest = sessions.enter_guest()
    assert sessions.select_hobbies(guest, []).hobbies == []


def test_update_hobbies_missing_account(registry):
    assert registry.update_hobbies("missing", ["music"]) is False


def test_guest_cannot_author(sessions, content):
    guest = sessions.enter_guest()
    with pytest.raises(GuestForbidden):
        content.create_post(guest, "coding", "hi")
    with pytest.raises(PermissionDenied):
        content.create_resource(guest, "coding", "PDF", "t", "https://example.com")
    with pytest.raises(RoleForbidden):
        content.create_event(guest, "coding", "t", "2026-01-01", "here")
    with pytest.raises(GuestForbidden):
        content.join_event(guest, "whatever")


def test_create_post(content, user_session):
    post = content.create_post(user_session, "coding", "  hello  ")
    assert post.text == "hello"
    assert post.author == "Rahul"
    assert post.author_role == "user"
    assert content.list_posts("coding") == [post]
    assert content.list_posts("music") == []


def test_create_post_blank_text(content, user_session):
    with pytest.raises(EmptyText):
        content.create_post(user_session, "coding", "   ")


def test_create_post_unknown_hobby(content, user_session):
    with pytest.raises(UnknownHobby):
        content.create_post(user_session, "knitting", "hi")


def test_delete_post_by_display_name(seeded, content, user_session):
    priya_post = content.list_posts("music")[0]
    with pytest.raises(Forbidden):
        content.delete_post(user_session, priya_post.id)
    rahul_post = content.list_posts("coding")[0]
    content.delete_post(user_session, rahul_post.id)
    assert content.get_post(rahul_post.id) is None


def test_admin_deletes_any_post(content, admin_session):
    priya_post = content.list_posts("music")[0]
    content.delete_post(admin_session, priya_post.id)
    assert content.list_posts("music") == []


def test_delete_missing_post(content, admin_session):
    with pytest.raises(NotFound):
        content.delete_post(admin_session, "missing")
    assert issubclass(NotFound, NotFoundError)


def test_create_event_then_list(content, organizer_session):
    event = content.create_event(organizer_session, "music", "Open Mic", "2026-03-01", "Cafe")
    assert event.created_by == "Event Organizer"
    assert content.list_events("music") == [event]
    assert content.list_events("music")[0].participants == []


def test_only_organizer_creates_events(content, admin_session):
    with pytest.raises(RoleForbidden):
        content.create_event(admin_session, "music", "Open Mic", "2026-03-01", "Cafe")


def test_create_event_missing_field(content, organizer_session):
    with pytest.raises(MissingField):
        content.create_event(organizer_session, "music", "Open Mic", "", "Cafe")


def test_join_event_is_idempotent(seeded, content, user_session):
    event = content.list_events("coding")[0]
    content.join_event(user_session, event.id)
    content.join_event(user_session, event.id)
    assert content.get_event(event.id).participants == ["rahul@example.com"]


def test_join_missing_event(content, user_session):
    with pytest.raises(NotFound):
        content.join_event(user_session, "missing")


def test_create_resource_missing_field(content, user_session):
    with pytest.raises(MissingField):
        content.create_resource(user_session, "coding", "PDF", "", "https://example.com")


def test_search_is_scoped_and_case_insensitive(seeded, content, user_session):
    content.create_post(user_session, "coding", "Thanks PRIYA for the tips")
    assert [p.author for p in content.search_posts("music", "priya")] == ["Priya Sharma"]
    assert [p.text for p in content.search_posts("coding", "priya")] == ["Thanks PRIYA for the tips"]
    assert [e.title for e in content.search_events("painting", "studio")] == ["Painting Workshop"]
    assert [r.title for r in content.search_resources("coding", "ARTICLE")] == ["Basics of Game Development"]
    assert len(content.search_posts("coding", "")) == 2


def test_dashboard_view(seeded, content, dashboard, user_session):
    content.create_post(user_session, "coding", "newer")
    view = dashboard.view(user_session)
    assert view["community"]["id"] == "coding"
    assert [p["text"] for p in view["posts"]][0] == "newer"
    assert [p["can_delete"] for p in view["posts"]] == [True, True]
    assert view["controls"]["can_post"] is True
    assert view["controls"]["can_create_event"] is False


def test_dashboard_event_flags(seeded, content, dashboard, user_session):
    event = content.list_events("coding")[0]
    content.join_event(user_session, event.id)
    view = dashboard.view(user_session, "coding")
    assert view["events"][0]["joined"] is True
    assert view["events"][0]["participant_count"] == 1


def test_admin_panel_and_ban(dashboard, user_session, admin_session):
    with pytest.raises(RoleForbidden):
        dashboard.admin_panel(user_session)
    with pytest.raises(RoleForbidden):
        dashboard.toggle_ban(user_session, "admin@hub.com")
    assert dashboard.toggle_ban(admin_session, "rahul@example.com") is True
    users = {u["email"]: u for u in dashboard.admin_panel(admin_session)["users"]}
    assert users["rahul@example.com"]["banned"] is True


def test_admin_panel_limits_recent_posts(content, dashboard, admin_session):
    for i in range(10):
        content.create_post(admin_session, "coding", f"post {i}")
    recent = dashboard.admin_panel(admin_session)["recent_posts"]
    assert len(recent) == 8
    assert recent[0]["text"] == "post 9"


@pytest.mark.parametrize("role,expected", [
    (Role.GUEST, False),
    (Role.USER, False),
    (Role.ORGANIZER, False),
    (Role.ADMIN, True),
])
def test_delete_rule_for_someone_elses_post(role, expected):
    assert permissions.can_delete_post(role, "Rahul", "Priya") is expected


def test_guest_named_like_author_cannot_delete():
    guest = Session("s", "guest", "Priya", "guest@local", Role.GUEST, mode=SessionMode.GUEST)
    post = Post("p", "music", "Priya", "user", "hi", "now")
    with pytest.raises(Forbidden):
        permissions.require_post_delete(guest, post)


def member(i):
    return Session(f"s{i}", f"a{i}", f"Member {i}", f"member{i}@example.com", Role.USER)


def test_concurrent_joins_are_all_kept(seeded, content):
    event = content.list_events("coding")[0]
    members = [member(i) for i in range(40)]
    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(lambda s: content.join_event(s, event.id), members))
    participants = content.get_event(event.id).participants
    assert len(participants) == 40
    assert sorted(participants) == sorted(s.email for s in members)


def test_concurrent_posts_are_all_kept(content):
    members = [member(i) for i in range(30)]
    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(lambda s: content.create_post(s, "music", f"hello from {s.name}"), members))
    assert len(content.list_posts("music")) == 30


def test_concurrent_ban_toggles(registry):
    emails = [f"member{i}@example.com" for i in range(30)]
    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(registry.toggle_ban, emails))
    assert sorted(registry.banned_emails()) == sorted(emails)


def test_malformed_stored_session_reads_as_none(store, sessions):
    store.write(KEY_SESSION, {"account_id": "a1", "name": "Old", "email": "old@example.com", "role": "user"})
    assert sessions.current_session() is None
    store.write(KEY_SESSION, {"sid": "s", "account_id": "a1", "name": "Old", "email": "old@example.com", "role": "wizard"})
    assert sessions.current_session() is None


def test_logout_with_stale_sid_keeps_active_session(sessions, user_session):
    guest = sessions.enter_guest()
    sessions.logout(user_session.sid)
    assert sessions.current_session().sid == guest.sid
    sessions.logout(guest.sid)
    assert sessions.current_session() is None
