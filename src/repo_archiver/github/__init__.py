from .api import GitHubAPI, RepositoryPager
from .models import RepositoryDescriptor, RepositoryPage

__all__ = [
    "GitHubAPI",
    "RepositoryPager",
    "RepositoryDescriptor",
    "RepositoryPage",
]
