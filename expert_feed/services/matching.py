"""Matching, scoring and ordering of questions against a provider profile"""

from collections.abc import Iterable

from expert_feed.models.feed_models import ProviderProfile, Question

CATEGORY_WEIGHT = 3
SKILL_WEIGHT = 2
INTEREST_WEIGHT = 1

CATEGORY_TOPIC_PREFIX = "category:"
TAG_TOPIC_PREFIX = "tag:"


def normalize(value: str) -> str:
    """Trim and case-fold a label for comparison"""
    return value.strip().casefold()


def _normalized_set(values: Iterable[str]) -> set[str]:
    return {normalize(value) for value in values}


def _category_names(profile: ProviderProfile) -> set[str]:
    return _normalized_set(category.name for category in profile.categories)


def matches(question: Question, profile: ProviderProfile) -> bool:
    """True when the question's category or any of its tags fits the profile"""
    if normalize(question.category) in _category_names(profile):
        return True

    tag_terms = _normalized_set(profile.skills) | _normalized_set(profile.interests)
    return any(normalize(tag) in tag_terms for tag in question.tags)


def score(question: Question, profile: ProviderProfile) -> int:
    """Relevance of a question for a profile.

    A category hit is worth 3. Every tag is scored on its own, 2 when it
    names a skill and 1 when it names an interest, so repeated tags and
    tags that are both skill and interest add up.
    """
    skills = _normalized_set(profile.skills)
    interests = _normalized_set(profile.interests)

    total = 0
    if normalize(question.category) in _category_names(profile):
        total += CATEGORY_WEIGHT

    for tag in question.tags:
        tag = normalize(tag)
        if tag in skills:
            total += SKILL_WEIGHT
        if tag in interests:
            total += INTEREST_WEIGHT

    return total


def rank(questions: Iterable[Question], profile: ProviderProfile) -> list[Question]:
    """Order by score, then newest first.

    sorted() is stable, so questions tied on both keys keep their
    current relative order across repeated calls.
    """
    return sorted(
        questions,
        key=lambda q: (score(q, profile), q.created_at),
        reverse=True,
    )


def derive_topics(profile: ProviderProfile) -> list[str]:
    """Broadcast rooms a provider listens on, sorted for deterministic joins"""
    topics: set[str] = set()

    for category in profile.categories:
        name = normalize(category.name)
        if name:
            topics.add(f"{CATEGORY_TOPIC_PREFIX}{name}")

    for value in [*profile.skills, *profile.interests]:
        value = normalize(value)
        if value:
            topics.add(f"{TAG_TOPIC_PREFIX}{value}")

    return sorted(topics)
