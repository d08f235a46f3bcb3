"""
Database Models
SQLAlchemy models for users, songs, collections, social graph and listening analytics
"""

from sqlalchemy import (
    create_engine, Column, String, Integer, DateTime, Text, ForeignKey, Float, Boolean, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship
from sqlalchemy.pool import StaticPool
from datetime import datetime, timezone
import logging
import os

logger = logging.getLogger(__name__)

Base = declarative_base()

ROLE_LISTENER = "listener"
ROLE_CREATOR = "content_creator"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """User model"""
    __tablename__ = "users"

    user_id = Column(String(255), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(50), unique=True, nullable=True, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(32), default=ROLE_LISTENER, nullable=False)
    password_hash = Column(String(255), nullable=False)
    bio = Column(Text, nullable=True)
    gender = Column(String(32), nullable=True)
    avatar_url = Column(Text, nullable=True)
    avatar_path = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    songs = relationship("Song", back_populates="creator", cascade="all, delete-orphan")
    playlists = relationship("Playlist", back_populates="creator", cascade="all, delete-orphan")
    albums = relationship("Album", back_populates="creator", cascade="all, delete-orphan")
    favorites = relationship("UserFavorite", back_populates="user", cascade="all, delete-orphan")
    listening_history = relationship("ListeningHistory", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")


class Category(Base):
    """Song category (genre / mood bucket)"""
    __tablename__ = "song_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    color = Column(String(20), nullable=True)
    description = Column(Text, nullable=True)

    songs = relationship("Song", back_populates="category")


class Song(Base):
    """Song model - identity fields are immutable, metadata is editable by the creator"""
    __tablename__ = "songs"

    song_id = Column(String(255), primary_key=True)
    title = Column(String(500), nullable=False, index=True)
    artist = Column(String(500), nullable=False, index=True)
    movie = Column(String(500), nullable=True)
    category_id = Column(Integer, ForeignKey("song_categories.id", ondelete="SET NULL"), nullable=True, index=True)
    creator_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    audio_url = Column(Text, nullable=True)
    audio_path = Column(String(500), nullable=True)  # Object key inside the songs bucket
    cover_url = Column(Text, nullable=True)
    lyrics = Column(Text, nullable=True)
    duration = Column(Float, default=0)
    is_public = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    creator = relationship("User", back_populates="songs")
    category = relationship("Category", back_populates="songs")
    analytics = relationship("SongAnalytics", back_populates="song", cascade="all, delete-orphan")
    listening_history = relationship("ListeningHistory", back_populates="song", cascade="all, delete-orphan")
    favorites = relationship("UserFavorite", back_populates="song", cascade="all, delete-orphan")
    playlist_entries = relationship("PlaylistSong", back_populates="song", cascade="all, delete-orphan")
    album_entries = relationship("AlbumSong", back_populates="song", cascade="all, delete-orphan")


class ListeningHistory(Base):
    """Listen event - one row per reported playback"""
    __tablename__ = "listening_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    song_id = Column(String(255), ForeignKey("songs.song_id", ondelete="CASCADE"), nullable=False, index=True)
    listen_duration = Column(Float, default=0)  # Seconds listened
    listened_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    user = relationship("User", back_populates="listening_history")
    song = relationship("Song", back_populates="listening_history")


class SongAnalytics(Base):
    """Per (song, listener) play rollup, updated in place on every play"""
    __tablename__ = "song_analytics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    song_id = Column(String(255), ForeignKey("songs.song_id", ondelete="CASCADE"), nullable=False, index=True)
    listener_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    play_count = Column(Integer, default=0, nullable=False)
    listen_duration = Column(Float, default=0, nullable=False)
    last_played = Column(DateTime, default=utcnow, nullable=False, index=True)

    song = relationship("Song", back_populates="analytics")
    listener = relationship("User")

    __table_args__ = (
        UniqueConstraint("song_id", "listener_id", name="uq_song_analytics_song_listener"),
    )


class UserFavorite(Base):
    """A liked song - the row's existence is the source of truth"""
    __tablename__ = "user_favorites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    song_id = Column(String(255), ForeignKey("songs.song_id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="favorites")
    song = relationship("Song", back_populates="favorites")

    __table_args__ = (
        UniqueConstraint("user_id", "song_id", name="uq_user_favorites_user_song"),
    )


class CreatorStats(Base):
    """Denormalized creator dashboard snapshot"""
    __tablename__ = "creator_stats"

    creator_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    total_songs = Column(Integer, default=0, nullable=False)
    total_listens = Column(Integer, default=0, nullable=False)
    total_favorites = Column(Integer, default=0, nullable=False)
    monthly_listeners = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Playlist(Base):
    """User playlist"""
    __tablename__ = "playlists"

    playlist_id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    creator_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    is_public = Column(Boolean, default=True, nullable=False)
    cover_url = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    creator = relationship("User", back_populates="playlists")
    entries = relationship(
        "PlaylistSong", back_populates="playlist", cascade="all, delete-orphan",
        order_by="PlaylistSong.position"
    )


class PlaylistSong(Base):
    """Ordered playlist membership"""
    __tablename__ = "playlist_songs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    playlist_id = Column(String(255), ForeignKey("playlists.playlist_id", ondelete="CASCADE"), nullable=False, index=True)
    song_id = Column(String(255), ForeignKey("songs.song_id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    added_at = Column(DateTime, default=utcnow, nullable=False)

    playlist = relationship("Playlist", back_populates="entries")
    song = relationship("Song", back_populates="playlist_entries")

    __table_args__ = (
        UniqueConstraint("playlist_id", "song_id", name="uq_playlist_songs_playlist_song"),
    )


class Album(Base):
    """Creator album"""
    __tablename__ = "albums"

    album_id = Column(String(255), primary_key=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    cover_url = Column(Text, nullable=True)
    release_date = Column(String(32), nullable=True)
    creator_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    is_public = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    creator = relationship("User", back_populates="albums")
    entries = relationship(
        "AlbumSong", back_populates="album", cascade="all, delete-orphan",
        order_by="AlbumSong.position"
    )


class AlbumSong(Base):
    """Ordered album track listing"""
    __tablename__ = "album_songs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    album_id = Column(String(255), ForeignKey("albums.album_id", ondelete="CASCADE"), nullable=False, index=True)
    song_id = Column(String(255), ForeignKey("songs.song_id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    album = relationship("Album", back_populates="entries")
    song = relationship("Song", back_populates="album_entries")

    __table_args__ = (
        UniqueConstraint("album_id", "song_id", name="uq_album_songs_album_song"),
    )


class FriendRequest(Base):
    """Friend request - an accepted request is the friendship"""
    __tablename__ = "friend_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, accepted, rejected
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])


class CreatorFollow(Base):
    """Listener following a content creator"""
    __tablename__ = "creator_follows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    follower_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    follower = relationship("User", foreign_keys=[follower_id])
    creator = relationship("User", foreign_keys=[creator_id])

    __table_args__ = (
        UniqueConstraint("follower_id", "creator_id", name="uq_creator_follows_pair"),
    )


class Notification(Base):
    """In-app notification"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), default="Notification")
    message = Column(Text, nullable=False)
    related_id = Column(String(255), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="notifications")


# Categories seeded on first start; the mood table maps emotions onto these names
DEFAULT_CATEGORIES = [
    ("happy", "#facc15", "Bright, feel-good songs"),
    ("party", "#f472b6", "Dance floor and celebration"),
    ("motivational", "#f97316", "Push through and keep going"),
    ("inspirational", "#22c55e", "Fresh starts and big feelings"),
    ("romantic", "#ef4444", "Love songs"),
    ("calm", "#38bdf8", "Slow down and breathe"),
    ("chill", "#6366f1", "Lo-fi and laid back"),
    ("energetic", "#dc2626", "High tempo"),
    ("sad", "#64748b", "For the blue days"),
    ("focus", "#0ea5e9", "Instrumental and study"),
    ("acoustic", "#a3a3a3", "Unplugged"),
    ("nostalgic", "#d97706", "Throwbacks"),
]


# Database setup
def create_engine_instance(database_url: str):
    """Create SQLAlchemy engine"""
    if database_url.startswith("sqlite"):
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=False
            )
        db_dir = os.path.dirname(database_url.replace("sqlite:///", "", 1))
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},  # Needed for SQLite
            echo=False
        )

    # PostgreSQL settings
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
        echo=False
    )


# Session factory is bound by init_engine() once settings are known
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)
engine = None


def init_engine(database_url: str):
    """Create the engine for database_url and bind the shared session factory to it"""
    global engine
    if engine is not None:
        engine.dispose()
    engine = create_engine_instance(database_url)
    SessionLocal.configure(bind=engine)
    logger.info(f"Database engine ready: {database_url.split('@')[-1]}")
    return engine


def seed_categories(db):
    """Insert any default category that is missing"""
    existing = {name for (name,) in db.query(Category.name).all()}
    for name, color, description in DEFAULT_CATEGORIES:
        if name not in existing:
            db.add(Category(name=name, color=color, description=description))
    db.commit()


def init_database():
    """Initialize database - create all tables and seed categories"""
    if engine is None:
        raise RuntimeError("init_engine() must be called before init_database()")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_categories(db)
    finally:
        db.close()
    logger.info("Database initialized successfully")

