"""
Attention feed feature package.

Everything that turns the domain tables into the user's attention feed
lives here: domain models, collectors, scoring and ranking stages, the
state overlay and resolution repositories, the orchestrating service and
the HTTP router (imported from ``api.router`` by the application).
"""

# Re-export the primary building blocks for easy access.
from .domain.models import AttentionFeed, AttentionItem, AttentionType, SourceType  # noqa: F401
from .identity import derive_attention_id  # noqa: F401
from .services.attention_service import AttentionService, attention_service  # noqa: F401
