from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .db import Base


class Game(Base):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    igdb_id = Column(Integer, unique=True, index=True, nullable=True)
    title = Column(String(500), nullable=False)
    # normalize_query(title): accent-folded, lowercase; candidate lookups match against this.
    search_title = Column(String(500), index=True, nullable=False, default="")
    overview = Column(Text, nullable=False, default="")
    # 0 when the release year is unknown.
    release_year = Column(Integer, nullable=False, default=0)
    cover_url = Column(String(1000), nullable=False, default="")

    platforms = relationship("GamePlatform", back_populates="game", cascade="all, delete-orphan")
    developers = relationship("GameDeveloper", back_populates="game", cascade="all, delete-orphan")
    publishers = relationship("GamePublisher", back_populates="game", cascade="all, delete-orphan")
    screenshots = relationship(
        "Screenshot",
        back_populates="game",
        cascade="all, delete-orphan",
        order_by="Screenshot.id",
    )


class Platform(Base):
    __tablename__ = "platforms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, index=True, nullable=False)


class Developer(Base):
    __tablename__ = "developers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, index=True, nullable=False)


class Publisher(Base):
    __tablename__ = "publishers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, index=True, nullable=False)


class GamePlatform(Base):
    __tablename__ = "game_platforms"

    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), primary_key=True)
    platform_id = Column(Integer, ForeignKey("platforms.id", ondelete="CASCADE"), primary_key=True)

    game = relationship("Game", back_populates="platforms")
    platform = relationship("Platform")


class GameDeveloper(Base):
    __tablename__ = "game_developers"

    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), primary_key=True)
    developer_id = Column(Integer, ForeignKey("developers.id", ondelete="CASCADE"), primary_key=True)

    game = relationship("Game", back_populates="developers")
    developer = relationship("Developer")


class GamePublisher(Base):
    __tablename__ = "game_publishers"

    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), primary_key=True)
    publisher_id = Column(Integer, ForeignKey("publishers.id", ondelete="CASCADE"), primary_key=True)

    game = relationship("Game", back_populates="publishers")
    publisher = relationship("Publisher")


class Screenshot(Base):
    __tablename__ = "screenshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), index=True, nullable=False)
    url = Column(String(1000), nullable=False)

    game = relationship("Game", back_populates="screenshots")
