from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi import status
from pydantic import BaseModel
from typing import Optional, List, Literal
from models import HOBBIES, Session
from manager import IdentityRegistry, SessionManager, ContentStore, Dashboard
from database import Database
from auth import oauth2_scheme, decode_access_token, session_token
from errors import HubError
from seed import seed
from utils import normalize_email
import permissions
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
import os

load_dotenv()  # Load variables from .env file
DB_NAME = os.getenv("HOBBYHUB_DB", "hobbyhub.db")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

# Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Database
db = Database(DB_NAME)

# FastAPI App
@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Closing database connection")
    db.close()

app = FastAPI(title="Hobby Hub API", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Init
registry = IdentityRegistry(db)
sessions = SessionManager(db, registry)
content = ContentStore(db)
dashboard = Dashboard(registry, content)
seed(registry, content)


@app.exception_handler(HubError)
async def hub_error_handler(request: Request, exc: HubError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

# -------------------------------
# Dependencies
# -------------------------------
def get_current_session(token: str = Depends(oauth2_scheme)) -> Session:
    """Resolve the bearer token to the active session."""
    token_data = decode_access_token(token)
    session = sessions.current_session()
    if session is None or session.sid != token_data.sid:
        raise HTTPException(
            status_code=401,
            detail="Session ended",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session

def get_admin_session(session: Session = Depends(get_current_session)) -> Session:
    permissions.require_admin(session)
    return session

# -------------------------------
# Schemas
# -------------------------------
class UserRegister(BaseModel):
    name: str
    email: str
    password: str
    role: Literal["user", "organizer", "admin"] = "user"

class UserLogin(BaseModel):
    email: str
    password: str

class HobbySelection(BaseModel):
    hobbies: List[str]

class PostCreate(BaseModel):
    text: str

class EventCreate(BaseModel):
    title: str
    date: str
    location: str

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Painting Workshop",
                "date": "2026-02-25",
                "location": "Art Studio, City",
            }
        }

class ResourceCreate(BaseModel):
    type: str
    title: str
    url: str

class BanToggle(BaseModel):
    email: str

def session_response(message: str, session: Session) -> dict:
    return {
        "message": message,
        "data": {"access_token": session_token(session), "token_type": "bearer", "session": session.to_dict()},
    }

# -------------------------------
# Auth Routes
# -------------------------------
@app.get("/", response_model=dict, summary="API root endpoint")
def root():
    """Welcome message for the Hobby Hub API."""
    return {"message": "Welcome to Hobby Hub API", "data": {}}

@app.get("/hobbies", response_model=dict, summary="List the hobby catalog")
def list_hobbies():
    data = [{"id": h.id, "name": h.name, "description": h.description} for h in HOBBIES]
    return {"message": "Hobbies retrieved", "data": data}

@app.post("/register", response_model=dict, status_code=status.HTTP_201_CREATED, summary="Register a new account")
def register(user: UserRegister):
    """Register a new account with the chosen role."""
    account = registry.register(user.name, user.email, user.password, user.role)
    return {"message": "Account created! Now login.", "data": {"id": account.id, "email": account.email}}

@app.post("/login", response_model=dict, summary="Login and start a session")
def login(user: UserLogin):
    """Authenticate and return an access token for the new session."""
    session = sessions.login(user.email, user.password)
    return session_response("Logged in", session)

@app.post("/guest", response_model=dict, summary="Browse as a guest")
def enter_guest():
    session = sessions.enter_guest()
    return session_response("Guest session started", session)

@app.post("/logout", response_model=dict, summary="End the active session")
def logout(token: str = Depends(oauth2_scheme)):
    """End the session named by the token; a session that already ended is not an error."""
    token_data = decode_access_token(token)
    sessions.logout(token_data.sid)
    return {"message": "Logged out", "data": {}}

@app.get("/session", response_model=dict, summary="Current session")
def current_session(session: Session = Depends(get_current_session)):
    return {"message": "Session retrieved", "data": session.to_dict()}

@app.put("/session/hobbies", response_model=dict, summary="Select hobbies")
def select_hobbies(selection: HobbySelection, session: Session = Depends(get_current_session)):
    """Replace the session's hobbies; saved to the account unless browsing as guest."""
    session = sessions.select_hobbies(session, selection.hobbies)
    return {"message": "Hobbies saved", "data": session.to_dict()}

# -------------------------------
# Community Routes
# -------------------------------
@app.get("/dashboard", response_model=dict, summary="Dashboard for a community")
def view_dashboard(hobby: Optional[str] = None, q: str = "", session: Session = Depends(get_current_session)):
    return {"message": "Dashboard retrieved", "data": dashboard.view(session, hobby, q)}

@app.get("/communities/{hobby_id}/posts", response_model=dict, summary="List posts of a community")
def list_posts(hobby_id: str, q: str = "", session: Session = Depends(get_current_session)):
    posts = content.search_posts(hobby_id, q)
    return {"message": "Posts retrieved", "data": [p.to_dict() for p in reversed(posts)]}

@app.post("/communities/{hobby_id}/posts", response_model=dict, status_code=status.HTTP_201_CREATED, summary="Create a post")
def create_post(hobby_id: str, post: PostCreate, session: Session = Depends(get_current_session)):
    created = content.create_post(session, hobby_id, post.text)
    return {"message": "Post created", "data": created.to_dict()}

@app.delete("/posts/{post_id}", response_model=dict, summary="Delete a post")
def delete_post(post_id: str, session: Session = Depends(get_current_session)):
    """Delete a post (its author or an admin)."""
    content.delete_post(session, post_id)
    return {"message": f"Post {post_id} deleted", "data": {}}

@app.get("/communities/{hobby_id}/events", response_model=dict, summary="List events of a community")
def list_events(hobby_id: str, q: str = "", session: Session = Depends(get_current_session)):
    events = content.search_events(hobby_id, q)
    return {"message": "Events retrieved", "data": [e.to_dict() for e in events]}

@app.post("/communities/{hobby_id}/events", response_model=dict, status_code=status.HTTP_201_CREATED, summary="Create an event")
def create_event(hobby_id: str, event: EventCreate, session: Session = Depends(get_current_session)):
    """Create a new event (organizers only)."""
    created = content.create_event(session, hobby_id, event.title, event.date, event.location)
    return {"message": "Event created", "data": created.to_dict()}

@app.post("/events/{event_id}/join", response_model=dict, summary="Join an event")
def join_event(event_id: str, session: Session = Depends(get_current_session)):
    event = content.join_event(session, event_id)
    return {"message": f"Joined {event.title}", "data": event.to_dict()}

@app.get("/communities/{hobby_id}/resources", response_model=dict, summary="List resources of a community")
def list_resources(hobby_id: str, q: str = "", session: Session = Depends(get_current_session)):
    resources = content.search_resources(hobby_id, q)
    return {"message": "Resources retrieved", "data": [r.to_dict() for r in reversed(resources)]}

@app.post("/communities/{hobby_id}/resources", response_model=dict, status_code=status.HTTP_201_CREATED, summary="Add a learning resource")
def create_resource(hobby_id: str, resource: ResourceCreate, session: Session = Depends(get_current_session)):
    created = content.create_resource(session, hobby_id, resource.type, resource.title, resource.url)
    return {"message": "Resource added", "data": created.to_dict()}

# -------------------------------
# Admin Routes
# -------------------------------
@app.get("/admin", response_model=dict, summary="Moderation panel")
def admin_panel(session: Session = Depends(get_admin_session)):
    return {"message": "Admin panel retrieved", "data": dashboard.admin_panel(session)}

@app.post("/admin/bans", response_model=dict, summary="Toggle a ban")
def toggle_ban(ban: BanToggle, session: Session = Depends(get_admin_session)):
    """Ban an email, or lift the ban if it is already in place."""
    banned = dashboard.toggle_ban(session, ban.email)
    return {"message": "Banned" if banned else "Unbanned", "data": {"email": normalize_email(ban.email), "banned": banned}}
