"""Fork resolver engine — upstream discovery for forked actions."""

from actiondeps.engines.fork_resolver.github_client import GitHubClient, RateLimitError
from actiondeps.engines.fork_resolver.lookup import ForkInfo, ForkLookup, GitHubForkLookup
from actiondeps.engines.fork_resolver.resolver import ForkResolver, ForkResolverConfig

__all__ = [
    "ForkInfo",
    "ForkLookup",
    "ForkResolver",
    "ForkResolverConfig",
    "GitHubClient",
    "GitHubForkLookup",
    "RateLimitError",
]
