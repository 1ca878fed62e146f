import logging
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from peereval.core.config.settings import get_settings
from peereval.db.base import Base
from peereval.db.session import engine as default_engine

# Import models so they are registered with Base.metadata
from peereval.models import invite, project, survey, team, user  # noqa: F401
from peereval.models.survey import SurveyCriterion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaCapabilities:
    """Optional schema features, resolved once at startup."""

    survey_criteria: bool = True


def detect_capabilities(engine: Engine) -> SchemaCapabilities:
    """Check which optional tables the connected database actually has."""
    if not get_settings().SURVEY_CRITERIA_ENABLED:
        return SchemaCapabilities(survey_criteria=False)
    has_criteria = inspect(engine).has_table(SurveyCriterion.__tablename__)
    if not has_criteria:
        logger.warning("Survey criteria table missing; surveys will be created without criteria")
    return SchemaCapabilities(survey_criteria=has_criteria)


def init_db(engine: Engine = default_engine) -> SchemaCapabilities:
    """Initialize database schema and report its capabilities"""
    if get_settings().AUTO_CREATE_TABLES:
        tables = None
        if not get_settings().SURVEY_CRITERIA_ENABLED:
            tables = [
                table for table in Base.metadata.sorted_tables
                if table.name != SurveyCriterion.__tablename__
            ]
        Base.metadata.create_all(bind=engine, tables=tables)
    return detect_capabilities(engine)


def get_capabilities(request: Request) -> SchemaCapabilities:
    capabilities = getattr(request.app.state, "capabilities", None)
    if capabilities is None:
        capabilities = detect_capabilities(default_engine)
        request.app.state.capabilities = capabilities
    return capabilities
