"""The fixed catalogue of site options the bot can build.

Each option carries the issue text created on approval and the single
question whose free-text answer is baked into the scaffold.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class SiteOption(BaseModel):
    """One buildable site option.

    Attributes:
        number: Position in the catalogue, used by "approve N".
        slug: Short identifier used in file content and labels.
        title: Human-readable option name.
        description: Issue body describing what will be built.
        question: Question asked after approval.
    """

    number: int = Field(..., ge=1)
    slug: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str
    question: str = Field(..., min_length=1)


SITE_OPTIONS: Dict[int, SiteOption] = {
    1: SiteOption(
        number=1,
        slug="landing-page",
        title="Landing page",
        description=(
            "A single-page landing site with a hero headline, a short pitch "
            "and a call-to-action button."
        ),
        question="What headline should the landing page lead with?",
    ),
    2: SiteOption(
        number=2,
        slug="portfolio",
        title="Portfolio site",
        description=(
            "A personal portfolio with an intro line and a grid of project cards."
        ),
        question="Whose portfolio is this, and what should the intro line say?",
    ),
    3: SiteOption(
        number=3,
        slug="todo-app",
        title="Todo app",
        description=(
            "A client-side todo list that keeps its items in the browser's "
            "local storage."
        ),
        question="What should the app be called?",
    ),
}


def get_option(number: int) -> Optional[SiteOption]:
    """Return the option with the given number, or None if there is none."""
    return SITE_OPTIONS.get(number)
