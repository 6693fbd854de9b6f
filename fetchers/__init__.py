# fetchers/__init__.py
from . import community

SOURCES = {
    "community": community.fetch_community_prompts,
}
