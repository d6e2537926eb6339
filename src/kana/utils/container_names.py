"""
Container Name Utilities - Role-qualified container naming

Every container belongs to one site and plays one role in it. Names are
derived from both so a site's containers can be found again by name alone.

Example: "kana-blog-database"
"""

from typing import List

PREFIX = "kana-"
NETWORK_NAME = "kana"

DATABASE = "database"
APPLICATION = "wordpress"
COMMAND = "wordpress_cli"
PHPMYADMIN = "phpmyadmin"
MAILPIT = "mailpit"

# Containers that make up a running site, dependencies first
SITE_ROLES = (DATABASE, APPLICATION, PHPMYADMIN, MAILPIT)


def container_name(site: str, role: str) -> str:
    """
    Build the role-qualified container name for a site

    Examples:
        >>> container_name("blog", "database")
        'kana-blog-database'
    """
    return f"{PREFIX}{site}-{role}"


def site_container_names(site: str) -> List[str]:
    """All long-running container names of a site, dependencies first"""
    return [container_name(site, role) for role in SITE_ROLES]
