import logging
from database import Database, KEY_USERS, KEY_SESSION, KEY_POSTS, KEY_EVENTS, KEY_RESOURCES, KEY_BANS
from models import Account, Session, Post, Event, Resource, Role, SessionMode, HOBBY_IDS, get_hobby
from errors import (
    ValidationError, MissingField, EmptyText, UnknownHobby,
    NotFound, DuplicateEmail, InvalidCredentials, Banned,
)
from auth import hash_password, verify_password
from utils import new_id, now_stamp, normalize_email, clean, parse_date, unique, filter_records
import permissions

logger = logging.getLogger(__name__)

GUEST_DEFAULT_HOBBIES = ["coding", "music"]
FALLBACK_COMMUNITY = "coding"
ADMIN_RECENT_POSTS = 8

POST_SEARCH_FIELDS = ("text", "author")
EVENT_SEARCH_FIELDS = ("title", "location")
RESOURCE_SEARCH_FIELDS = ("title", "type")


def require_hobby(hobby_id: str) -> str:
    if hobby_id not in HOBBY_IDS:
        raise UnknownHobby(f"Unknown hobby: {hobby_id}")
    return hobby_id


class IdentityRegistry:
    def __init__(self, db: Database):
        """Initialize the registry over the accounts and ban-list keys."""
        self.db = db

    def _load(self) -> list[Account]:
        return [Account.from_dict(a) for a in self.db.read(KEY_USERS, [])]

    def _save(self, accounts: list[Account]):
        self.db.write(KEY_USERS, [a.to_dict() for a in accounts])

    def list_accounts(self) -> list[Account]:
        """Retrieve all accounts in registration order."""
        return self._load()

    def find_by_email(self, email: str) -> Account | None:
        """Retrieve an account by its normalized email."""
        email = normalize_email(email)
        for account in self._load():
            if account.email == email:
                return account
        return None

    def register(self, name: str, email: str, password: str, role) -> Account:
        """Create an account with the role the user picked."""
        name, email, password = clean(name), normalize_email(email), clean(password)
        if not name or not email or not password or not role:
            raise MissingField("Fill all fields!")
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError(f"Unknown role: {role}")
        if role is Role.GUEST:
            raise ValidationError("Guest is not a registrable role")
        hashed = hash_password(password)
        with self.db.transaction():
            if self.find_by_email(email) is not None:
                raise DuplicateEmail()
            account = self.add_account(Account(
                id=new_id(),
                name=name,
                email=email,
                password=hashed,
                role=role,
            ))
        logger.info(f"Account {email} registered with role {role.value}")
        return account

    def add_account(self, account: Account) -> Account:
        """Append an account without validation."""
        with self.db.transaction():
            accounts = self._load()
            accounts.append(account)
            self._save(accounts)
        return account

    def update_hobbies(self, account_id: str, hobbies) -> bool:
        """Replace an account's hobby selection; missing accounts are ignored."""
        with self.db.transaction():
            accounts = self._load()
            for account in accounts:
                if account.id == account_id:
                    account.hobbies = unique(hobbies)
                    self._save(accounts)
                    return True
        return False

    def banned_emails(self) -> list[str]:
        return self.db.read(KEY_BANS, [])

    def is_banned(self, email: str) -> bool:
        return normalize_email(email) in self.banned_emails()

    def toggle_ban(self, email: str) -> bool:
        """Flip ban-list membership for email and return the new state."""
        email = normalize_email(email)
        if not email:
            raise MissingField("Email is required")
        with self.db.transaction():
            banned = self.banned_emails()
            if email in banned:
                banned.remove(email)
                now_banned = False
            else:
                banned.append(email)
                now_banned = True
            self.db.write(KEY_BANS, banned)
        logger.info(f"{email} {'banned' if now_banned else 'unbanned'}")
        return now_banned


class SessionManager:
    def __init__(self, db: Database, registry: IdentityRegistry):
        """Initialize the manager of the single active session."""
        self.db = db
        self.registry = registry

    def current_session(self) -> Session | None:
        data = self.db.read(KEY_SESSION, None)
        if not data:
            return None
        try:
            return Session.from_dict(data)
        except (TypeError, ValueError):
            logger.warning("Discarding unreadable stored session")
            return None

    def _activate(self, session: Session) -> Session:
        self.db.write(KEY_SESSION, session.to_dict())
        return session

    def login(self, email: str, password: str) -> Session:
        """Authenticate an account and make it the active session."""
        email, password = normalize_email(email), clean(password)
        if not email or not password:
            raise MissingField("Enter email and password!")
        if self.registry.is_banned(email):
            raise Banned()
        account = self.registry.find_by_email(email)
        if account is None or not verify_password(password, account.password):
            raise InvalidCredentials()
        session = self._activate(Session(
            sid=new_id(),
            account_id=account.id,
            name=account.name,
            email=account.email,
            role=account.role,
            hobbies=list(account.hobbies),
            mode=SessionMode.AUTH,
        ))
        logger.info(f"{email} logged in")
        return session

    def enter_guest(self) -> Session:
        """Start a guest session; nothing is written to the registry."""
        session = self._activate(Session(
            sid=new_id(),
            account_id="guest",
            name="Guest",
            email="guest@local",
            role=Role.GUEST,
            hobbies=list(GUEST_DEFAULT_HOBBIES),
            mode=SessionMode.GUEST,
        ))
        logger.info("Guest session started")
        return session

    def logout(self, sid: str | None = None):
        """End the active session; with sid, only if it is still the active one."""
        with self.db.transaction():
            current = self.current_session()
            if current is not None and sid is not None and current.sid != sid:
                return
            self.db.clear(KEY_SESSION)
        if current is not None:
            logger.info(f"{current.email} logged out")

    def select_hobbies(self, session: Session, hobbies) -> Session:
        """Replace the session's hobbies, persisting them for non-guests."""
        hobbies = unique(require_hobby(h) for h in hobbies)
        if permissions.persists_hobbies(session.role):
            if not hobbies:
                raise MissingField("Select at least 1 hobby!")
            self.registry.update_hobbies(session.account_id, hobbies)
        session.hobbies = hobbies
        # Only the active session is written back.
        with self.db.transaction():
            current = self.current_session()
            if current is not None and current.sid == session.sid:
                self._activate(session)
        return session


class ContentStore:
    def __init__(self, db: Database):
        """Initialize the posts, events and resources collections."""
        self.db = db

    # Posts
    def all_posts(self) -> list[Post]:
        return [Post.from_dict(p) for p in self.db.read(KEY_POSTS, [])]

    def _save_posts(self, posts: list[Post]):
        self.db.write(KEY_POSTS, [p.to_dict() for p in posts])

    def list_posts(self, hobby_id: str) -> list[Post]:
        """Posts of one community in insertion order."""
        return [p for p in self.all_posts() if p.hobby == hobby_id]

    def recent_posts(self, limit: int) -> list[Post]:
        """Newest posts across every community."""
        return list(reversed(self.all_posts()))[:limit]

    def get_post(self, post_id: str) -> Post | None:
        return next((p for p in self.all_posts() if p.id == post_id), None)

    def add_post(self, post: Post) -> Post:
        with self.db.transaction():
            posts = self.all_posts()
            posts.append(post)
            self._save_posts(posts)
        return post

    def create_post(self, session: Session, hobby_id: str, text: str) -> Post:
        permissions.require_authenticated(session, "post")
        require_hobby(hobby_id)
        text = clean(text)
        if not text:
            raise EmptyText()
        post = self.add_post(Post(
            id=new_id(),
            hobby=hobby_id,
            author=session.name,
            author_role=session.role.value,
            text=text,
            time=now_stamp(),
        ))
        logger.info(f"Post {post.id} created in {hobby_id} by {session.email}")
        return post

    def delete_post(self, session: Session, post_id: str):
        with self.db.transaction():
            posts = self.all_posts()
            post = next((p for p in posts if p.id == post_id), None)
            if post is None:
                raise NotFound("Post not found")
            permissions.require_post_delete(session, post)
            self._save_posts([p for p in posts if p.id != post_id])
        logger.info(f"Post {post_id} deleted by {session.email}")

    def search_posts(self, hobby_id: str, query: str) -> list[Post]:
        return filter_records(self.list_posts(hobby_id), query, POST_SEARCH_FIELDS)

    # Events
    def all_events(self) -> list[Event]:
        return [Event.from_dict(e) for e in self.db.read(KEY_EVENTS, [])]

    def _save_events(self, events: list[Event]):
        self.db.write(KEY_EVENTS, [e.to_dict() for e in events])

    def list_events(self, hobby_id: str) -> list[Event]:
        """Events of one community in insertion order."""
        return [e for e in self.all_events() if e.hobby == hobby_id]

    def get_event(self, event_id: str) -> Event | None:
        return next((e for e in self.all_events() if e.id == event_id), None)

    def add_event(self, event: Event) -> Event:
        with self.db.transaction():
            events = self.all_events()
            events.append(event)
            self._save_events(events)
        return event

    def create_event(self, session: Session, hobby_id: str, title: str, date: str, location: str) -> Event:
        """Create an event (organizers only)."""
        permissions.require_organizer(session)
        require_hobby(hobby_id)
        title, date, location = clean(title), clean(date), clean(location)
        if not title or not date or not location:
            raise MissingField("Fill all event fields!")
        parse_date(date)
        event = self.add_event(Event(
            id=new_id(),
            hobby=hobby_id,
            title=title,
            date=date,
            location=location,
            created_by=session.name,
        ))
        logger.info(f"Event {event.id} created in {hobby_id} by {session.email}")
        return event

    def join_event(self, session: Session, event_id: str) -> Event:
        """Add the session's email to an event's participants once."""
        permissions.require_authenticated(session, "join events")
        with self.db.transaction():
            events = self.all_events()
            event = next((e for e in events if e.id == event_id), None)
            if event is None:
                raise NotFound("Event not found")
            if session.email in event.participants:
                return event
            event.participants.append(session.email)
            self._save_events(events)
        logger.info(f"{session.email} joined event {event_id}")
        return event

    def search_events(self, hobby_id: str, query: str) -> list[Event]:
        return filter_records(self.list_events(hobby_id), query, EVENT_SEARCH_FIELDS)

    # Resources
    def all_resources(self) -> list[Resource]:
        return [Resource.from_dict(r) for r in self.db.read(KEY_RESOURCES, [])]

    def list_resources(self, hobby_id: str) -> list[Resource]:
        """Resources of one community in insertion order."""
        return [r for r in self.all_resources() if r.hobby == hobby_id]

    def add_resource(self, resource: Resource) -> Resource:
        with self.db.transaction():
            resources = self.all_resources()
            resources.append(resource)
            self.db.write(KEY_RESOURCES, [r.to_dict() for r in resources])
        return resource

    def create_resource(self, session: Session, hobby_id: str, type: str, title: str, url: str) -> Resource:
        permissions.require_authenticated(session, "add resources")
        require_hobby(hobby_id)
        type, title, url = clean(type), clean(title), clean(url)
        if not type or not title or not url:
            raise MissingField("Fill all resource fields!")
        resource = self.add_resource(Resource(
            id=new_id(),
            hobby=hobby_id,
            type=type,
            title=title,
            url=url,
            added_by=session.name,
        ))
        logger.info(f"Resource {resource.id} added to {hobby_id} by {session.email}")
        return resource

    def search_resources(self, hobby_id: str, query: str) -> list[Resource]:
        return filter_records(self.list_resources(hobby_id), query, RESOURCE_SEARCH_FIELDS)


class Dashboard:
    def __init__(self, registry: IdentityRegistry, content: ContentStore):
        """Initialize the dashboard over the registry and content store."""
        self.registry = registry
        self.content = content

    def communities(self, session: Session) -> list[str]:
        """Communities shown for a session, falling back to coding."""
        return list(session.hobbies) or [FALLBACK_COMMUNITY]

    def view(self, session: Session, hobby_id: str | None = None, query: str = "") -> dict:
        """Everything one community shows to the given principal."""
        hobby_id = hobby_id or self.communities(session)[0]
        hobby = get_hobby(require_hobby(hobby_id))
        role = session.role
        posts = self.content.search_posts(hobby_id, query)
        events = self.content.search_events(hobby_id, query)
        resources = self.content.search_resources(hobby_id, query)
        return {
            "community": {"id": hobby.id, "name": hobby.name, "description": hobby.description},
            "communities": self.communities(session),
            "controls": {
                "can_post": permissions.can_create_post(role),
                "can_create_event": permissions.can_create_event(role),
                "can_add_resource": permissions.can_create_resource(role),
                "is_admin": permissions.can_moderate(role),
            },
            "posts": [
                {**p.to_dict(), "can_delete": permissions.can_delete_post(role, session.name, p.author)}
                for p in reversed(posts)
            ],
            "events": [
                {**e.to_dict(), "joined": session.email in e.participants, "participant_count": len(e.participants)}
                for e in events
            ],
            "resources": [r.to_dict() for r in reversed(resources)],
        }

    def admin_panel(self, session: Session) -> dict:
        """Accounts with their ban state and the most recent posts (admins only)."""
        permissions.require_admin(session)
        banned = self.registry.banned_emails()
        users = [
            {"id": a.id, "name": a.name, "email": a.email, "role": a.role.value, "banned": a.email in banned}
            for a in self.registry.list_accounts()
        ]
        posts = self.content.recent_posts(ADMIN_RECENT_POSTS)
        return {"users": users, "recent_posts": [p.to_dict() for p in posts]}

    def toggle_ban(self, session: Session, email: str) -> bool:
        permissions.require_admin(session)
        return self.registry.toggle_ban(email)
