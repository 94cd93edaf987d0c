"""
Configuration document schemas

Each top-level model maps to one key of the remote config store:
- home
- team
- projects
- faq
- footer
- page_settings

Field names are snake_case in Python and camelCase on the wire. Unknown
fields are kept so a save never drops data another client wrote.
"""
from typing import Any, Callable, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="allow",
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# Shared sections
class Hero(Document):
    enabled: bool = True
    background_image: str = ""
    title: str = ""


class PageHero(Hero):
    title_highlight: str = ""


class TextBlock(Document):
    enabled: bool = True
    text: str = ""


# Home
class HomeHero(Hero):
    show_separator: bool = True


class ContentSection(Document):
    id: str
    enabled: bool = True
    title: str = ""
    description: str = ""
    image: str = ""
    image_position: Literal["left", "right"] = "left"
    background_color: Literal["white", "ivory"] = "white"


class HomeConfig(Document):
    hero: HomeHero = Field(default_factory=HomeHero)
    introduction: TextBlock = Field(default_factory=TextBlock)
    sections: List[ContentSection] = Field(default_factory=list)


# Team
class TeamMember(Document):
    id: int
    name: str = ""
    title: str = ""
    bio: str = ""
    image: str = ""


class TeamConfig(Document):
    hero: PageHero = Field(default_factory=PageHero)
    members: List[TeamMember] = Field(default_factory=list)


# Projects
PROJECT_STATUSES = ("In Progress", "Completed", "Coming Soon", "Planning")


class Specification(Document):
    key: str = ""
    value: str = ""


class Project(Document):
    id: int
    name: str = ""
    location: str = ""
    image: str = ""
    description: str = ""
    status: str = "In Progress"  # free text, PROJECT_STATUSES are the usual ones
    size: Optional[str] = None
    link: Optional[str] = None
    detail_description: Optional[str] = None
    completion_date: Optional[str] = None
    client_name: Optional[str] = None
    image_gallery: List[str] = Field(default_factory=list)
    specifications: List[Specification] = Field(default_factory=list)


class ProjectsConfig(Document):
    projects: List[Project] = Field(default_factory=list)


# FAQ
class FAQHero(PageHero):
    subtitle: str = ""


class CategoryFilter(Document):
    enabled: bool = True
    show_all_option: bool = True


class FAQListSettings(Document):
    enabled: bool = True
    show_category_badges: bool = True


class FAQItem(Document):
    id: int
    question: str = ""
    answer: str = ""
    category: str = ""


class FAQConfig(Document):
    hero: FAQHero = Field(default_factory=FAQHero)
    category_filter: CategoryFilter = Field(default_factory=CategoryFilter)
    faqs: FAQListSettings = Field(default_factory=FAQListSettings)
    faq_items: List[FAQItem] = Field(default_factory=list)


# Footer
class NavLink(Document):
    name: str
    path: str


class CompanyInfo(Document):
    enabled: bool = True
    description: str = ""
    logo_url: str = ""


class NavigationSection(Document):
    enabled: bool = True
    title: str = "Navigation"
    links: List[NavLink] = Field(default_factory=list)


class ContactSection(Document):
    enabled: bool = False
    title: str = "Contact"
    email: str = ""
    phone: str = ""
    location: str = ""


class EmailPlatform(Document):
    enabled: bool = False
    value: str = ""


class SocialPlatform(Document):
    enabled: bool = False
    username: str = ""


class SocialPlatforms(Document):
    email: EmailPlatform = Field(default_factory=EmailPlatform)
    linkedin: SocialPlatform = Field(default_factory=SocialPlatform)
    facebook: SocialPlatform = Field(default_factory=SocialPlatform)
    twitter: SocialPlatform = Field(default_factory=SocialPlatform)
    instagram: SocialPlatform = Field(default_factory=SocialPlatform)
    youtube: SocialPlatform = Field(default_factory=SocialPlatform)


class SocialSection(Document):
    enabled: bool = False
    title: str = "Follow Us"
    platforms: SocialPlatforms = Field(default_factory=SocialPlatforms)


class FooterSections(Document):
    company_info: CompanyInfo = Field(default_factory=CompanyInfo)
    navigation: NavigationSection = Field(default_factory=NavigationSection)
    contact: ContactSection = Field(default_factory=ContactSection)
    social: SocialSection = Field(default_factory=SocialSection)


class Copyright(Document):
    enabled: bool = True
    text: str = ""
    year: Optional[int] = None


class FooterConfig(Document):
    sections: FooterSections = Field(default_factory=FooterSections)
    copyright: Copyright = Field(default_factory=Copyright)


# Page visibility
PAGES = ("home", "team", "projects", "faq")
PageName = Literal["home", "team", "projects", "faq"]


class PageSettings(Document):
    home: bool = True
    team: bool = True
    projects: bool = True
    faq: bool = True


ListEntity = Union[TeamMember, Project, FAQItem]


# Built-in defaults, used whenever a key has never been written
def default_home() -> HomeConfig:
    return HomeConfig(
        hero=HomeHero(
            background_image="https://images.unsplash.com/photo-1545324418-cc1a3fa10c00?auto=format&fit=crop&w=1920&q=80",
            title="Trusted Development, Built to Last",
        ),
        introduction=TextBlock(
            text=(
                "With decades of combined experience, Kulana Development partners with investors, builders, "
                "and architects to transform concepts into high-performing assets. From feasibility and design "
                "to construction and delivery, we manage each stage with precision, integrity, and a commitment "
                "to long-term value."
            ),
        ),
        sections=[
            ContentSection(
                id="what-we-deliver",
                title="What We Deliver",
                description=(
                    "From Feasibility to Turnkey Delivery, we manage entitlements, design coordination, "
                    "procurement, and site execution, one accountable team focused on outcomes that endure."
                ),
                image="https://images.unsplash.com/photo-1486406146926-c627a92ad1ab?auto=format&fit=crop&w=1200&q=80",
                image_position="left",
                background_color="white",
            ),
            ContentSection(
                id="how-we-build",
                title="How We Build - The Kulana Way",
                description=(
                    "Results You Can Measure. Milestone gates, cost tracking, and schedule health checks keep "
                    "your project on time, on spec, and built to last."
                ),
                image="https://images.unsplash.com/photo-1541888946425-d81bb19240f5?auto=format&fit=crop&w=1200&q=80",
                image_position="right",
                background_color="ivory",
            ),
            ContentSection(
                id="culture",
                title="A Culture Built to Last",
                description=(
                    "Lessons learned feed every new project, so each delivery is stronger than the last. "
                    "We put people first: safety, respect, and accountability."
                ),
                image="https://images.unsplash.com/photo-1521737711867-e3b97375f902?auto=format&fit=crop&w=1200&q=80",
                image_position="left",
                background_color="white",
            ),
        ],
    )


def default_team() -> TeamConfig:
    return TeamConfig(
        hero=PageHero(
            background_image="https://images.unsplash.com/photo-1521737711867-e3b97375f902?auto=format&fit=crop&w=1920&q=80",
            title="Management Team",
            title_highlight="Team",
        ),
    )


def default_projects() -> ProjectsConfig:
    return ProjectsConfig()


def default_faq() -> FAQConfig:
    return FAQConfig(
        hero=FAQHero(
            background_image="https://images.unsplash.com/photo-1450101499163-c8848c66ca85?auto=format&fit=crop&w=1920&q=80",
            title="FAQ",
            title_highlight="FAQ",
            subtitle="Everything you need to know about partnering with Kulana Development",
        ),
    )


def default_footer() -> FooterConfig:
    return FooterConfig(
        sections=FooterSections(
            company_info=CompanyInfo(
                description=(
                    "Transforming concepts into high-performing assets with precision, integrity, "
                    "and commitment to long-term value."
                ),
            ),
            navigation=NavigationSection(
                links=[
                    NavLink(name="Sectors", path="/"),
                    NavLink(name="Projects", path="/projects"),
                    NavLink(name="About", path="/management-team"),
                    NavLink(name="FAQ", path="/faq"),
                ],
            ),
            contact=ContactSection(
                email="info@kulanadevelopment.com",
                phone="(555) 123-4567",
                location="Texas & Southeast",
            ),
        ),
        copyright=Copyright(text="Kulana Development"),
    )


def default_page_settings() -> PageSettings:
    return PageSettings()


DOCUMENT_MODELS: Dict[str, Type[Document]] = {
    "home": HomeConfig,
    "team": TeamConfig,
    "projects": ProjectsConfig,
    "faq": FAQConfig,
    "footer": FooterConfig,
    "page_settings": PageSettings,
}

DEFAULT_DOCUMENTS: Dict[str, Callable[[], Document]] = {
    "home": default_home,
    "team": default_team,
    "projects": default_projects,
    "faq": default_faq,
    "footer": default_footer,
    "page_settings": default_page_settings,
}

ConfigKey = Literal["home", "team", "projects", "faq", "footer", "page_settings"]
