"""
Database models for curated explanations, failure logs and prompts.
"""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Integer, Text, DateTime, JSON
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_uuid():
    """Generate UUID string for primary keys."""
    return str(uuid.uuid4())


class GoldenExplanation(Base):
    """Curated explanation keyed by the digest of a problem image."""

    __tablename__ = 'golden_explanations'

    cache_key = Column(String(128), primary_key=True)
    markdown = Column(Text, nullable=False)
    core_concepts = Column(JSON)  # List of strings
    difficulty = Column(Integer)
    variation_problem = Column(JSON)  # {problem, explanation}
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<GoldenExplanation(cache_key={self.cache_key[:12]}...)>"


class FailureLog(Base):
    """One failed generation attempt, kept for later review."""

    __tablename__ = 'failure_logs'

    id = Column(String, primary_key=True, default=generate_uuid)
    explanation_id = Column(String, nullable=False)
    page_number = Column(Integer)
    problem_number = Column(Integer)
    problem_text = Column(Text)
    problem_image_base64 = Column(Text)
    reason = Column(Text, nullable=False)
    mode = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<FailureLog(id={self.id}, problem={self.problem_number})>"


class Prompt(Base):
    """Named instruction set."""

    __tablename__ = 'prompts'

    name = Column(String, primary_key=True)
    content = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Prompt(name={self.name})>"
