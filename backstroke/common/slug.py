"""Repository slug utilities.

Repository slugs are GitHub identifiers in ``owner/repo`` format. They are
used in log events and webhook API paths, never as filesystem paths.
"""

from __future__ import annotations


def repo_slug(owner: str, repo: str) -> str:
    """Build a repository slug from owner and repository name.

    Parameters
    ----------
    owner:
        GitHub repository owner (organisation or user).
    repo:
        GitHub repository name.

    Returns
    -------
    str
        Slug in ``owner/repo`` format.

    Examples
    --------
    >>> repo_slug("octo", "reef")
    'octo/reef'

    """
    return f"{owner}/{repo}"
