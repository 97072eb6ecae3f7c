"""
Remote repository identity.

A RemoteRepository is the hashable identity the discovery cache is keyed
by: URL, credentials reference, remote name and refspec templates. All
validation happens at construction so a malformed configuration blocks
source setup instead of surfacing at fetch time.
"""

import re
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from urllib.parse import urlsplit

REMOTE_PLACEHOLDER = "@{remote}"
DEFAULT_REMOTE_NAME = "origin"
BRANCH_REFSPEC_TEMPLATE = "+refs/heads/*:refs/remotes/@{remote}/*"
TAG_REFSPEC = "+refs/tags/*:refs/tags/*"

_REMOTE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class ConfigurationInvalid(ValueError):
    """Raised when a source, refspec or trait configuration is malformed."""


@dataclass(frozen=True)
class RefSpec:
    """A parsed fetch refspec such as ``+refs/heads/*:refs/remotes/origin/*``."""

    source: str
    destination: str
    force: bool = False

    def __str__(self) -> str:
        text = self.source
        if self.destination:
            text = f"{text}:{self.destination}"
        return f"+{text}" if self.force else text

    def matches(self, ref_name: str) -> bool:
        """Whether a full ref name is selected by the source side."""
        return fnmatchcase(ref_name, self.source)


def parse_refspec(text: str) -> RefSpec:
    """Parse a single refspec, raising ConfigurationInvalid when malformed."""
    spec = text.strip()
    if not spec or any(ch.isspace() for ch in spec):
        raise ConfigurationInvalid(f"Invalid refspec: {text!r}")

    force = spec.startswith("+")
    if force:
        spec = spec[1:]

    source, sep, destination = spec.partition(":")
    if not source:
        raise ConfigurationInvalid(f"Refspec has no source: {text!r}")
    if sep and not destination:
        raise ConfigurationInvalid(f"Refspec has an empty destination: {text!r}")
    if ":" in destination:
        raise ConfigurationInvalid(f"Refspec has more than one ':': {text!r}")

    src_wild = source.count("*")
    dst_wild = destination.count("*")
    if src_wild > 1 or dst_wild > 1:
        raise ConfigurationInvalid(f"Refspec has more than one '*' per side: {text!r}")
    if destination and src_wild != dst_wild:
        raise ConfigurationInvalid(f"Refspec wildcards do not match: {text!r}")

    return RefSpec(source=source, destination=destination, force=force)


def split_refspecs(raw: str) -> tuple[str, ...]:
    """Split a whitespace separated refspec string into templates."""
    return tuple(raw.split())


def normalize_url(url: str) -> str:
    """Normalize a remote URL for comparison.

    Trailing slashes and a ``.git`` suffix are ignored, and the scheme and
    host are compared case-insensitively.
    """
    text = url.strip().rstrip("/")
    text = text.removesuffix(".git").rstrip("/")
    parts = urlsplit(text)
    if parts.scheme and parts.netloc:
        return f"{parts.scheme.lower()}://{parts.netloc.lower()}{parts.path}"
    return text


@dataclass(frozen=True)
class RemoteRepository:
    """Identity of a remote the discovery engine talks to."""

    url: str
    credentials_id: str = ""
    remote_name: str = DEFAULT_REMOTE_NAME
    refspecs: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if not self.url or not self.url.strip():
            raise ConfigurationInvalid("Remote URL must not be empty")
        if not _REMOTE_NAME_RE.match(self.remote_name):
            raise ConfigurationInvalid(f"Invalid remote name: {self.remote_name!r}")
        if isinstance(self.refspecs, str):
            templates = split_refspecs(self.refspecs)
        else:
            templates = tuple(part for item in self.refspecs for part in item.split())
        object.__setattr__(self, "refspecs", templates)
        # Validate eagerly; the parsed form is recomputed on demand.
        self.parsed_refspecs()

    def parsed_refspecs(self) -> list[RefSpec]:
        """Configured refspecs with the remote name substituted."""
        return [
            parse_refspec(template.replace(REMOTE_PLACEHOLDER, self.remote_name))
            for template in self.refspecs
        ]

    def refspec_string(self, include_tags: bool = False) -> str:
        """Refspec line for the checkout descriptor's remote configuration."""
        if self.refspecs:
            return " ".join(str(spec) for spec in self.parsed_refspecs())
        specs = [BRANCH_REFSPEC_TEMPLATE.replace(REMOTE_PLACEHOLDER, self.remote_name)]
        if include_tags:
            specs.append(TAG_REFSPEC)
        return " ".join(specs)

    def selects_branch(self, name: str) -> bool:
        """Whether the configured refspecs fetch ``refs/heads/<name>``.

        Without explicit refspecs every branch is fetched.
        """
        if not self.refspecs:
            return True
        ref_name = f"refs/heads/{name}"
        return any(spec.matches(ref_name) for spec in self.parsed_refspecs())

    @property
    def normalized_url(self) -> str:
        return normalize_url(self.url)
