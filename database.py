import json
import logging
import sqlite3
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)

# Store keys
KEY_USERS = "hh_users"
KEY_SESSION = "hh_session"
KEY_POSTS = "hh_posts"
KEY_EVENTS = "hh_events"
KEY_RESOURCES = "hh_resources"
KEY_BANS = "hh_banned"

ALL_KEYS = (KEY_USERS, KEY_SESSION, KEY_POSTS, KEY_EVENTS, KEY_RESOURCES, KEY_BANS)


class Database:
    def __init__(self, db_name="hobbyhub.db"):
        """
        Initialize a SQLite-backed key-value store.
        Every key holds one JSON document; callers read and write whole collections.
        """
        self.conn = sqlite3.connect(db_name, check_same_thread=False)
        self.lock = threading.RLock()
        self.create_tables()

    def create_tables(self):
        """Create the key-value table."""
        cursor = self.conn.cursor()
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        ''')
        self.conn.commit()

    def read(self, key, default=None):
        """Return the decoded value stored under key, or default if absent or unreadable."""
        with self.lock:
            cursor = self.conn.cursor()
            cursor.execute('SELECT value FROM kv WHERE key = ?', (key,))
            row = cursor.fetchone()
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except ValueError:
            logger.warning(f"Discarding unreadable value stored under {key}")
            return default

    def write(self, key, value):
        """Replace the value stored under key."""
        with self.lock:
            cursor = self.conn.cursor()
            cursor.execute('''
                INSERT INTO kv (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
            ''', (key, json.dumps(value)))
            self.conn.commit()

    def clear(self, key):
        """Remove key; a missing key is not an error."""
        with self.lock:
            cursor = self.conn.cursor()
            cursor.execute('DELETE FROM kv WHERE key = ?', (key,))
            self.conn.commit()

    @contextmanager
    def transaction(self):
        """Hold the store for a whole read-modify-write; nested use is allowed."""
        with self.lock:
            yield self

    def reset(self):
        """Remove every application key."""
        for key in ALL_KEYS:
            self.clear(key)

    def close(self):
        """Close the database connection."""
        self.conn.close()
