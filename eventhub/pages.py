from pydantic import BaseModel


COMING_SOON = "This page is under construction. Check back soon!"


class PageShell(BaseModel):
    title: str
    message: str = COMING_SOON


def placeholder_page(title: str) -> PageShell:
    return PageShell(title=title)


def title_from_slug(slug: str) -> str:
    return " ".join(word.capitalize() for word in slug.replace("_", "-").split("-") if word)
