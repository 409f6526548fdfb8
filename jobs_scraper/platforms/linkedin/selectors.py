"""LinkedIn DOM selectors grouped into layout profiles.

LinkedIn serves different markups for the same page. Each profile bundles the
selectors of one markup; strategies try their profiles in order and keep the
first one whose result container shows up for the rest of the session.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class LayoutProfile:
    """Selector bundle for one page layout. ``None`` disables the related field."""

    name: str
    container: str
    items: str
    link: str
    title: str
    company: str
    place: str
    date: str
    details_panel: str
    description: str
    job_id_attrs: tuple[str, ...] = ("data-job-id", "data-id", "data-entity-urn")
    company_img: str | None = "img"
    company_link: str | None = None
    date_text: str | None = None
    insights: str | None = None
    criteria: str | None = None
    skills: str | None = None
    apply_anchor: str | None = None
    apply_button: str | None = None
    load_more_button: str | None = None
    promoted_label: str | None = "Promoted"
    chat_panel: str | None = None
    privacy_accept_button: str | None = None

    def to_js(self) -> dict[str, Any]:
        """Serializable form passed to in-page scripts."""
        data = asdict(self)
        data["job_id_attrs"] = list(self.job_id_attrs)
        return data


# --- Authenticated (logged-in) two-pane layout ---
AUTHENTICATED_PROFILES: tuple[LayoutProfile, ...] = (
    LayoutProfile(
        name="authenticated-scaffold",
        container=".scaffold-layout__list",
        items="div.job-card-container",
        link="a.job-card-container__link",
        title=".artdeco-entity-lockup__title",
        company=".artdeco-entity-lockup__subtitle",
        place=".artdeco-entity-lockup__caption",
        date="time",
        details_panel=".jobs-search__job-details--container",
        description=".jobs-description",
        company_link=".job-details-jobs-unified-top-card__company-name a",
        date_text=".job-details-jobs-unified-top-card__primary-description-container span:nth-of-type(3)",
        insights=".job-details-jobs-unified-top-card__container--two-pane li",
        skills=".job-details-how-you-match__skills-item-subtitle",
        apply_button='button.jobs-apply-button[role="link"]',
        chat_panel=".msg-overlay-list-bubble",
        privacy_accept_button="button.artdeco-global-alert__action",
    ),
    LayoutProfile(
        name="authenticated-two-pane",
        container=".jobs-search-two-pane__container",
        items="li.jobs-search-results__list-item",
        link="a.job-card-container__link.job-card-list__title",
        title="a.job-card-list__title",
        company="div[data-test-job-card-list__company-name]",
        place="li[data-test-job-card-list__location]",
        date="time",
        details_panel=".jobs-details__main-content",
        description=".jobs-description",
        job_id_attrs=("data-occludable-job-id", "data-job-id"),
        criteria=".jobs-box__group h3",
        apply_button='button.jobs-apply-button[role="link"]',
        chat_panel=".msg-overlay-list-bubble",
    ),
)

# --- Anonymous (guest) infinite-scroll layout ---
ANONYMOUS_PROFILES: tuple[LayoutProfile, ...] = (
    LayoutProfile(
        name="anonymous-results-two-pane",
        container=".results__container.results__container--two-pane",
        items=".jobs-search__results-list li",
        link="a.result-card__full-card-link",
        title="a.result-card__full-card-link",
        company=".result-card__subtitle.job-result-card__subtitle",
        place=".job-result-card__location",
        date="time",
        details_panel=".details-pane__content",
        description=".description__text",
        criteria="li.job-criteria__item",
        apply_anchor="a[data-is-offsite-apply=true]",
        load_more_button="button.infinite-scroller__show-more-button",
        promoted_label=None,
    ),
    LayoutProfile(
        name="anonymous-serp",
        container=".two-pane-serp-page__results-list",
        items=".jobs-search__results-list li",
        link="a.base-card__full-link",
        title=".base-search-card__title",
        company=".base-search-card__subtitle",
        place=".job-search-card__location",
        date="time",
        details_panel=".details-pane__content",
        description=".description__text",
        criteria="li.description__job-criteria-item",
        apply_anchor="a[data-is-offsite-apply=true]",
        load_more_button="button.infinite-scroller__show-more-button",
        promoted_label=None,
    ),
)
