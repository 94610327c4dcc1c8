# job_discovery/boards/catalog.py
"""
Built-in catalog of remote job boards and the recommendation score.

Scores (1..10):
  priority                       overall board quality
  regional_friendliness["EU"]    how well the board serves European candidates
  stack_friendliness[".NET"]     how many .NET/C# roles the board carries
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from types import MappingProxyType

from ..models import BoardDescriptor
from ..normalize import canonical_location, canonical_skill, region_covers
from ..utils import norm_key

EU = "EU"
DOTNET = ".NET"

# Stack keywords that count toward a board's .NET score.
_DOTNET_FAMILY = {".NET", "C#", "ASP.NET", "Entity Framework", "Blazor"}

REGION_WEIGHT = 2
STACK_WEIGHT = 2
TAG_BONUS = 5


def _board(
    name: str,
    url: str,
    priority: int,
    *,
    eu: int,
    dotnet: int,
    tags: Iterable[str],
    description: str,
    feed_url: str | None = None,
    feed_kind: str = "html",
) -> BoardDescriptor:
    return BoardDescriptor(
        name=name,
        url=url,
        priority=priority,
        regional_friendliness=MappingProxyType({EU: eu}),
        stack_friendliness=MappingProxyType({DOTNET: dotnet}),
        tags=frozenset(tags),
        description=description,
        feed_url=feed_url,
        feed_kind=feed_kind,
    )


DEFAULT_BOARDS: tuple[BoardDescriptor, ...] = (
    _board("We Work Remotely", "https://weworkremotely.com", 10, eu=9, dotnet=8,
           tags=("premium", "high-quality", "dev-heavy"),
           description="Premier remote job board - high-quality dev positions",
           feed_url="https://weworkremotely.com/remote-jobs.rss", feed_kind="rss"),
    _board("RemoteOK", "https://remoteok.com", 9, eu=8, dotnet=7,
           tags=("large-volume", "tech-focused", "worldwide"),
           description="Largest remote job board - great for backend devs",
           feed_url="https://remoteok.com/api", feed_kind="remoteok"),
    _board("Remote.co", "https://remote.co/remote-jobs/developer", 9, eu=9, dotnet=8,
           tags=("curated", "reputable", "established-companies"),
           description="Curated remote jobs from established companies"),
    _board("Arc.dev", "https://arc.dev/remote-jobs", 9, eu=7, dotnet=9,
           tags=("tech-only", "vetted", "high-paying"),
           description="Tech talent marketplace - vetted positions, high pay"),
    _board("Dynamite Jobs", "https://dynamitejobs.com/remote-jobs", 8, eu=10, dotnet=7,
           tags=("quality", "async-friendly", "time-zone-flexible"),
           description="Time-zone flexible remote jobs - great for EU"),
    _board("EU Remote Jobs", "https://euremotejobs.com", 8, eu=10, dotnet=8,
           tags=("eu-only", "local-companies", "time-zone-friendly"),
           description="EU-specific remote positions - perfect for European devs"),
    _board("Remote100k", "https://remote100k.com", 8, eu=7, dotnet=8,
           tags=("high-paying", "senior", "100k+"),
           description="Remote jobs paying $100k+ - senior positions"),
    _board("Wellfound (AngelList)", "https://wellfound.com/role/r/software-engineer", 8, eu=6, dotnet=7,
           tags=("startups", "tech", "equity", "high-growth"),
           description="Startup jobs with equity - tech-heavy"),
    _board("JustRemote", "https://justremote.co/remote-developer-jobs", 7, eu=8, dotnet=7,
           tags=("global", "diverse", "all-levels"),
           description="Global remote job board - all experience levels"),
    _board("Remotive", "https://remotive.com", 7, eu=8, dotnet=7,
           tags=("tech-focused", "community", "newsletter"),
           description="Tech remote jobs with active community",
           feed_url="https://remotive.com/api/remote-jobs", feed_kind="remotive"),
    _board("Jobicy", "https://jobicy.com", 7, eu=8, dotnet=6,
           tags=("tech-focused", "worldwide", "curated"),
           description="Remote jobs with a public listings API",
           feed_url="https://jobicy.com/api/v2/remote-jobs?count=50", feed_kind="jobicy"),
    _board("Himalayas", "https://himalayas.app/jobs", 7, eu=8, dotnet=6,
           tags=("tech", "remote-first", "companies"),
           description="Remote-first companies with salary data",
           feed_url="https://himalayas.app/jobs/api", feed_kind="himalayas"),
    _board("FlexJobs", "https://www.flexjobs.com/remote-jobs/developer", 7, eu=7, dotnet=6,
           tags=("vetted", "scam-free", "subscription"),
           description="Hand-screened remote jobs (requires subscription)"),
    _board("Startup Jobs (Remote)", "https://startup.jobs/remote-jobs", 7, eu=7, dotnet=7,
           tags=("startups", "equity", "early-stage"),
           description="Remote jobs at startups - equity opportunities"),
    _board("Nodesk", "https://nodesk.co/remote-jobs", 7, eu=8, dotnet=6,
           tags=("curated", "remote-first", "companies"),
           description="Curated list of remote-first companies"),
    _board("Pangian", "https://pangian.com/job-travel-remote", 7, eu=8, dotnet=6,
           tags=("global", "remote", "diverse"),
           description="Global remote job board with diverse opportunities"),
    _board("PowerToFly", "https://powertofly.com/jobs", 7, eu=7, dotnet=7,
           tags=("diversity", "tech", "remote"),
           description="Diversity-focused remote tech jobs"),
    _board("Working Nomads", "https://www.workingnomads.com/jobs", 6, eu=8, dotnet=6,
           tags=("digital-nomad", "time-zone-flexible", "global"),
           description="Remote jobs for digital nomads",
           feed_url="https://www.workingnomads.com/api/exposed_jobs/", feed_kind="workingnomads"),
    _board("Arbeitnow", "https://www.arbeitnow.com", 6, eu=10, dotnet=6,
           tags=("eu-focused", "germany", "visa-sponsorship"),
           description="European tech jobs, many remote, with a public job board API",
           feed_url="https://www.arbeitnow.com/api/job-board-api", feed_kind="arbeitnow"),
    _board("Jobgether", "https://jobgether.com/remote-jobs", 6, eu=9, dotnet=7,
           tags=("eu-focused", "tech", "startup-friendly"),
           description="EU-friendly remote tech positions"),
    _board("Jobspresso", "https://jobspresso.co/remote-work", 6, eu=7, dotnet=6,
           tags=("curated", "tech", "marketing"),
           description="Curated remote jobs in tech"),
    _board("Workster", "https://workster.co", 6, eu=7, dotnet=6,
           tags=("global", "remote", "diverse"),
           description="Global remote job opportunities"),
    _board("Workew", "https://workew.com", 6, eu=7, dotnet=6,
           tags=("remote", "tech", "worldwide"),
           description="Remote tech jobs worldwide"),
    _board("Remoters", "https://remoters.net/jobs", 6, eu=7, dotnet=6,
           tags=("remote", "tech", "community"),
           description="Remote tech jobs and community"),
    _board("Skip The Drive", "https://www.skipthedrive.com", 6, eu=5, dotnet=6,
           tags=("remote", "telecommute", "us-focused"),
           description="Remote and telecommute jobs"),
    _board("Citizen Remote", "https://citizenremote.com/jobs", 6, eu=7, dotnet=6,
           tags=("remote", "digital-nomad", "global"),
           description="Remote jobs for digital nomads"),
    _board("Virtual Vocations", "https://www.virtualvocations.com", 6, eu=6, dotnet=6,
           tags=("remote", "telecommute", "verified"),
           description="Hand-screened remote and telecommute jobs"),
    _board("Inclusively Remote", "https://inclusivelyremote.com", 6, eu=7, dotnet=6,
           tags=("diversity", "inclusion", "remote"),
           description="Inclusive remote job opportunities"),
    _board("Remote Nomad Jobs", "https://remotenomadjobs.com", 5, eu=7, dotnet=5,
           tags=("digital-nomad", "remote", "travel"),
           description="Remote jobs for digital nomads"),
    _board("Open To Work Remote", "https://opentoworkremote.com", 5, eu=6, dotnet=5,
           tags=("remote", "open", "global"),
           description="Open remote job opportunities"),
)


# =============================================================================
# SCORING
# =============================================================================
def _region_keys(locations: Iterable[str]) -> set[str]:
    """Requested locations -> casefolded friendliness keys they touch."""
    keys: set[str] = set()
    for loc in locations:
        if not loc or not loc.strip():
            continue
        keys.add(norm_key(loc))
        canon = canonical_location(loc)
        if canon:
            keys.add(norm_key(canon))
        if canon in ("Europe", "EMEA") or region_covers("Europe", canon):
            keys.add(norm_key(EU))
    return keys


def _stack_keys(stacks: Iterable[str]) -> set[str]:
    keys: set[str] = set()
    for s in stacks:
        if not s or not s.strip():
            continue
        canon = canonical_skill(s)
        keys.add(norm_key(canon))
        if canon in _DOTNET_FAMILY:
            keys.add(norm_key(DOTNET))
    return keys


def relevance(board: BoardDescriptor, locations: Iterable[str] = (), stacks: Iterable[str] = ()) -> int:
    """
    priority * 10
      + 2 * sum(regional_friendliness entries matching the locations)
      + 2 * sum(stack_friendliness entries matching the stacks)
      + 5 per stack keyword that appears in the board's tags
    """
    stacks = [s for s in stacks if s and s.strip()]
    regions = _region_keys(locations)
    stack_keys = _stack_keys(stacks)

    score = board.priority * 10
    score += REGION_WEIGHT * sum(v for k, v in board.regional_friendliness.items() if norm_key(k) in regions)
    score += STACK_WEIGHT * sum(v for k, v in board.stack_friendliness.items() if norm_key(k) in stack_keys)
    tags = {norm_key(t) for t in board.tags}
    score += TAG_BONUS * sum(1 for s in stacks if norm_key(s) in tags)
    return score


# =============================================================================
# REGISTRY
# =============================================================================
class BoardRegistry:
    """Immutable, name-addressable set of boards."""

    def __init__(self, boards: Iterable[BoardDescriptor] = ()):
        boards = tuple(boards)
        seen: set[str] = set()
        for b in boards:
            key = norm_key(b.name)
            if key in seen:
                raise ValueError(f"Duplicate board name: {b.name!r}")
            seen.add(key)
        self._boards = boards

    def __iter__(self) -> Iterator[BoardDescriptor]:
        return iter(self._boards)

    def __len__(self) -> int:
        return len(self._boards)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def get(self, name: str) -> BoardDescriptor | None:
        key = norm_key(name)
        for b in self._boards:
            if norm_key(b.name) == key:
                return b
        return None

    def names(self) -> list[str]:
        return [b.name for b in self._boards]

    def recommend(
        self,
        locations: Iterable[str] = (),
        stacks: Iterable[str] = (),
        limit: int | None = None,
    ) -> list[BoardDescriptor]:
        """
        Boards ranked by relevance() descending; equal scores fall back to
        name order so the result is deterministic.
        """
        locations, stacks = list(locations), list(stacks)
        ranked = sorted(self._boards, key=lambda b: (-relevance(b, locations, stacks), b.name.casefold()))
        return ranked if limit is None else ranked[: max(0, limit)]


_DEFAULT = BoardRegistry(DEFAULT_BOARDS)


def default_registry() -> BoardRegistry:
    return _DEFAULT


def recommend(
    locations: Iterable[str] = (),
    stacks: Iterable[str] = (),
    limit: int | None = None,
    registry: BoardRegistry | None = None,
) -> list[BoardDescriptor]:
    return (registry if registry is not None else _DEFAULT).recommend(locations, stacks, limit)
