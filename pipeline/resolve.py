"""Agent → stage lookup.

Agent identifiers are lower-cased before lookup. Unknown agents resolve to the
first pipeline stage so no event is ever dropped for want of a mapping.
"""
import logging

from models.stages import STAGE_ORDER

logger = logging.getLogger(__name__)

DEFAULT_STAGE = STAGE_ORDER[0]

AGENT_STAGE_MAP: dict[str, str] = {
    "story_writer": "story_generation",
    "design_architect": "design_generation",
    "code_developer": "code_generation",
    "test_engineer": "testing",
    "deployment_manager": "deployment",
    "deployment_specialist": "deployment",
    "supervisor": DEFAULT_STAGE,
}


def resolve(agent_id: str) -> str:
    """Return the stage id the given agent reports progress for."""
    key = agent_id.strip().lower()
    stage_id = AGENT_STAGE_MAP.get(key)
    if stage_id is None:
        logger.debug("Unknown agent %r, using default stage %s", agent_id, DEFAULT_STAGE)
        return DEFAULT_STAGE
    return stage_id
