"""Shared pytest fixtures for promptmarket tests."""
import sys
from pathlib import Path

# Add project root to path BEFORE any other imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import pytest


@pytest.fixture
def id_factory():
    """Deterministic ids: c1, c2, ..."""
    counter = {"n": 0}

    def _next():
        counter["n"] += 1
        return f"c{counter['n']}"

    return _next


@pytest.fixture
def user_records():
    return [
        {
            "id": "u1",
            "title": "Ultimate SEO Content Generator",
            "description": "You are an expert SEO content writer...",
            "model": "ChatGPT-4",
            "author": "ContentMaster Pro",
            "price": 29.99,
            "rating": 4.9,
            "sales": 1520,
            "tags": ["SEO", "Content"],
            "last_updated": "2024-01-15",
        },
        {
            "id": "u2",
            "title": "AI Code Reviewer & Optimizer",
            "description": "Act as a senior software engineer...",
            "model": "Claude 3.5",
            "author": "DevGuru AI",
            "price": 4.5,
            "rating": 4.8,
            "sales": 892,
            "tags": ["Programming"],
            "last_updated": "2024-01-18",
        },
        {
            "id": "u3",
            "title": "Creative Story & Character Builder",
            "description": "You are a master storyteller...",
            "model": "ChatGPT-4",
            "author": "StoryWeaver",
            "price": "free",
            "rating": 4.7,
            "sales": 2840,
            "tags": ["Fiction"],
            "last_updated": "2024-01-20",
        },
    ]


@pytest.fixture
def user_prompts(user_records):
    from core.normalizer import normalize_user_prompts
    return normalize_user_prompts(user_records)


@pytest.fixture
def community_prompts(id_factory):
    from core.models import MarketplacePrompt
    return [
        MarketplacePrompt(id=id_factory(), title="Linux Terminal",
                          prompt_body="I want you to act as a linux terminal.",
                          model="ChatGPT", source="community"),
        MarketplacePrompt(id=id_factory(), title="English Translator",
                          prompt_body="Act as an English translator and improver.",
                          model="ChatGPT", source="community"),
    ]
