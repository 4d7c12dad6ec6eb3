"""Demo data inserted into an empty store at startup."""
import logging
from models import Account, Post, Event, Resource, Role
from manager import IdentityRegistry, ContentStore
from auth import hash_password
from utils import new_id, now_stamp

logger = logging.getLogger(__name__)

DEMO_ACCOUNTS = [
    ("Admin", "admin@hub.com", "admin123", Role.ADMIN, ["coding"]),
    ("Event Organizer", "org@hub.com", "org123", Role.ORGANIZER, ["music", "painting"]),
]


def seed_demo_accounts(registry: IdentityRegistry):
    """Add the privileged demo accounts that are missing."""
    for name, email, password, role, hobbies in DEMO_ACCOUNTS:
        if registry.find_by_email(email) is None:
            registry.add_account(Account(new_id(), name, email, hash_password(password), role, list(hobbies)))
            logger.info(f"Seeded demo account {email}")


def seed_demo_content(content: ContentStore):
    """Add sample content to each collection that is still empty."""
    if not content.all_posts():
        content.add_post(Post(
            new_id(), "music", "Priya Sharma", "user",
            "Just learned a new chord progression for my song 🎸 Sharing notes with you all!",
            now_stamp(),
        ))
        content.add_post(Post(
            new_id(), "coding", "Rahul", "user",
            "Guide: Web Development Basics — HTML + CSS + JS roadmap. Ask if you need help!",
            now_stamp(),
        ))
    if not content.all_events():
        content.add_event(Event(new_id(), "painting", "Painting Workshop", "2026-02-25", "Art Studio, City", "Event Organizer"))
        content.add_event(Event(new_id(), "coding", "Beginner Web Dev Bootcamp", "2026-02-28", "Online", "Event Organizer"))
    if not content.all_resources():
        content.add_resource(Resource(new_id(), "music", "PDF", "Free Music Theory PDF", "https://example.com", "Priya Sharma"))
        content.add_resource(Resource(new_id(), "coding", "Article", "Basics of Game Development", "https://example.com", "Rahul"))


def seed(registry: IdentityRegistry, content: ContentStore):
    seed_demo_accounts(registry)
    seed_demo_content(content)
