"""Read-only views of the configuration documents for the public site.

A disabled section is left out of the view; its data stays in the document.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from config_client import ConfigClient, MalformedResponse
from schemas import (
    DEFAULT_DOCUMENTS,
    DOCUMENT_MODELS,
    Document,
    FAQConfig,
    FooterConfig,
    HomeConfig,
    PageSettings,
    ProjectsConfig,
    TeamConfig,
)

ALL_CATEGORIES = "All"

NAV_ITEMS = (
    ("Sectors", "/", "home"),
    ("Projects", "/projects", "projects"),
    ("About", "/management-team", "team"),
    ("FAQ", "/faq", "faq"),
)

SOCIAL_URLS = {
    "email": "mailto:{}",
    "linkedin": "https://www.linkedin.com/company/{}",
    "facebook": "https://www.facebook.com/{}",
    "twitter": "https://twitter.com/{}",
    "instagram": "https://www.instagram.com/{}",
    "youtube": "https://www.youtube.com/@{}",
}


def load_document(client: ConfigClient, key: str) -> Document:
    """Stored document for key, or its built-in default when never written."""
    value = client.fetch_document(key)
    if value is None:
        return DEFAULT_DOCUMENTS[key]()
    try:
        return DOCUMENT_MODELS[key].model_validate(value)
    except ValidationError as e:
        raise MalformedResponse(f"Stored {key} config is malformed") from e


def visible(section: Document) -> Optional[Dict[str, Any]]:
    return section.to_wire() if section.enabled else None


def render_home(doc: HomeConfig) -> Dict[str, Any]:
    return {
        "hero": visible(doc.hero),
        "introduction": visible(doc.introduction),
        "sections": [section.to_wire() for section in doc.sections if section.enabled],
    }


def render_team(doc: TeamConfig) -> Dict[str, Any]:
    return {
        "hero": visible(doc.hero),
        "members": [member.to_wire() for member in doc.members],
    }


def render_projects(doc: ProjectsConfig) -> Dict[str, Any]:
    return {"projects": [project.to_wire() for project in doc.projects]}


def render_project(doc: ProjectsConfig, project_id: int) -> Optional[Dict[str, Any]]:
    for project in doc.projects:
        if project.id == project_id:
            return project.to_wire()
    return None


def faq_categories(doc: FAQConfig) -> List[str]:
    categories = []
    for item in doc.faq_items:
        if item.category and item.category not in categories:
            categories.append(item.category)
    return categories


def render_faq(doc: FAQConfig, category: Optional[str] = None) -> Dict[str, Any]:
    category_filter = None
    if doc.category_filter.enabled:
        categories = faq_categories(doc)
        if doc.category_filter.show_all_option:
            categories.insert(0, ALL_CATEGORIES)
        category_filter = {"categories": categories, "selected": category or ALL_CATEGORIES}

    faqs = None
    if doc.faqs.enabled:
        items = doc.faq_items
        if category and category != ALL_CATEGORIES:
            items = [item for item in items if item.category == category]
        faqs = []
        for item in items:
            entry = item.to_wire()
            if not doc.faqs.show_category_badges:
                entry.pop("category", None)
            faqs.append(entry)

    return {"hero": visible(doc.hero), "categoryFilter": category_filter, "faqs": faqs}


def render_footer(doc: FooterConfig, today: Optional[date] = None) -> Dict[str, Any]:
    sections = doc.sections
    social = None
    if sections.social.enabled:
        links = []
        for name, platform in sections.social.platforms:
            if not getattr(platform, "enabled", False):
                continue
            handle = platform.value if name == "email" else platform.username
            if not handle:
                continue
            links.append({"platform": name, "url": SOCIAL_URLS.get(name, "{}").format(handle)})
        social = {"title": sections.social.title, "links": links}

    copyright_view = None
    if doc.copyright.enabled:
        year = doc.copyright.year or (today or date.today()).year
        copyright_view = {"text": doc.copyright.text, "year": year}

    return {
        "companyInfo": visible(sections.company_info),
        "navigation": visible(sections.navigation),
        "contact": visible(sections.contact),
        "social": social,
        "copyright": copyright_view,
    }


def render_navbar(settings: PageSettings) -> List[Dict[str, str]]:
    return [{"name": name, "path": path} for name, path, page in NAV_ITEMS if getattr(settings, page)]
