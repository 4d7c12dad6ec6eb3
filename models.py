from dataclasses import dataclass, field, asdict, fields
from enum import Enum


class Role(str, Enum):
    GUEST = "guest"
    USER = "user"
    ORGANIZER = "organizer"
    ADMIN = "admin"


class SessionMode(str, Enum):
    AUTH = "auth"
    GUEST = "guest"


class Record:
    """Mixin for records persisted as plain JSON dicts."""

    def to_dict(self) -> dict:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Enum):
                data[key] = value.value
        return data

    @classmethod
    def from_dict(cls, data: dict):
        # Unknown keys are dropped so older documents still load.
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass(frozen=True)
class Hobby:
    id: str
    name: str
    description: str


@dataclass
class Account(Record):
    id: str
    name: str
    email: str
    password: str  # bcrypt hash
    role: Role
    hobbies: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.role = Role(self.role)


@dataclass
class Session(Record):
    sid: str
    account_id: str
    name: str
    email: str
    role: Role
    hobbies: list[str] = field(default_factory=list)
    mode: SessionMode = SessionMode.AUTH

    def __post_init__(self):
        self.role = Role(self.role)
        self.mode = SessionMode(self.mode)

    @property
    def is_guest(self) -> bool:
        return self.role is Role.GUEST


@dataclass
class Post(Record):
    id: str
    hobby: str
    author: str
    author_role: str
    text: str
    time: str


@dataclass
class Event(Record):
    id: str
    hobby: str
    title: str
    date: str
    location: str
    created_by: str
    participants: list[str] = field(default_factory=list)


@dataclass
class Resource(Record):
    id: str
    hobby: str
    type: str
    title: str
    url: str
    added_by: str


HOBBIES = (
    Hobby("music", "Music 🎵", "Chord progressions, practice tips, songwriting."),
    Hobby("coding", "Coding 💻", "Web dev, projects, debugging & learning paths."),
    Hobby("painting", "Painting 🎨", "Art styles, brush techniques, color theory."),
    Hobby("photography", "Photography 📷", "Camera settings, composition, editing."),
    Hobby("gaming", "Gaming 🎮", "Strategy, esports, reviews & friendly matches."),
    Hobby("cooking", "Cooking 🍳", "Recipes, plating, kitchen hacks."),
)

HOBBY_IDS = tuple(h.id for h in HOBBIES)


def get_hobby(hobby_id: str) -> Hobby | None:
    """Look up a catalog entry by id."""
    for hobby in HOBBIES:
        if hobby.id == hobby_id:
            return hobby
    return None
