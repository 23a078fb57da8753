"""Storage contracts consumed by comment submission, plus in-memory versions."""

from __future__ import annotations

from typing import Optional, Protocol

from commentary.comments.domain.models import Comment, Commenter, Domain, Page


class StoreError(Exception):
    """A backing store could not complete an operation."""


class PageStore(Protocol):
    async def get(self, domain: str, path: str) -> Page:
        """Return page attributes; pages never seen before read as unlocked."""
        ...

    async def ensure(self, domain: str, path: str) -> None:
        """Create the page record if absent. Safe to race with itself."""
        ...


class DomainStore(Protocol):
    async def get(self, domain: str) -> Optional[Domain]:
        ...


class CommenterStore(Protocol):
    async def get_by_token(self, token: str) -> Optional[Commenter]:
        ...

    async def get_by_hex(self, commenter_hex: str) -> Optional[Commenter]:
        ...


class CommentStore(Protocol):
    async def insert(self, comment: Comment) -> None:
        ...

    async def get(self, comment_hex: str) -> Optional[Comment]:
        ...


class InMemoryPageStore(PageStore):
    def __init__(self) -> None:
        self.pages: dict[tuple[str, str], Page] = {}

    async def get(self, domain: str, path: str) -> Page:
        page = self.pages.get((domain, path))
        if page is None:
            return Page(domain=domain, path=path, is_locked=False)
        return page.model_copy()

    async def ensure(self, domain: str, path: str) -> None:
        self.pages.setdefault((domain, path), Page(domain=domain, path=path))

    def put(self, page: Page) -> None:
        self.pages[(page.domain, page.path)] = page


class InMemoryDomainStore(DomainStore):
    def __init__(self) -> None:
        self.domains: dict[str, Domain] = {}

    async def get(self, domain: str) -> Optional[Domain]:
        found = self.domains.get(domain)
        return found.model_copy(deep=True) if found else None

    def put(self, domain: Domain) -> None:
        self.domains[domain.domain] = domain


class InMemoryCommenterStore(CommenterStore):
    def __init__(self) -> None:
        self.commenters: dict[str, Commenter] = {}
        self.tokens: dict[str, str] = {}

    async def get_by_token(self, token: str) -> Optional[Commenter]:
        commenter_hex = self.tokens.get(token)
        if commenter_hex is None:
            return None
        return self.commenters.get(commenter_hex)

    async def get_by_hex(self, commenter_hex: str) -> Optional[Commenter]:
        return self.commenters.get(commenter_hex)

    def put(self, commenter: Commenter, *, token: Optional[str] = None) -> None:
        self.commenters[commenter.commenter_hex] = commenter
        if token:
            self.tokens[token] = commenter.commenter_hex


class InMemoryCommentStore(CommentStore):
    def __init__(self) -> None:
        self.comments: dict[str, Comment] = {}

    async def insert(self, comment: Comment) -> None:
        if comment.comment_hex in self.comments:
            raise StoreError(f"duplicate comment id {comment.comment_hex}")
        self.comments[comment.comment_hex] = comment

    async def get(self, comment_hex: str) -> Optional[Comment]:
        return self.comments.get(comment_hex)
