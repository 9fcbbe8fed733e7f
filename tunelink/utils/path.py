"""
Utilities for handling file names and track URL parsing.
"""

from pathlib import Path

from pathvalidate import sanitize_filename

from tunelink.exceptions import ConfigurationError


def extract_track_id(url: str) -> str:
    """
    Returns the maximal run of decimal digits at the end of a URL.

    An empty string is returned when the URL does not end in a digit.
    """
    end = len(url)
    start = end
    while start > 0 and "0" <= url[start - 1] <= "9":
        start -= 1
    return url[start:end]


def is_deezer_url(url: str) -> bool:
    return "deezer.com" in url


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


class PathFormatter:
    """
    Formats an output file name template using track metadata.
    """

    def __init__(self, template: str) -> None:
        self.template = template

    def format_path(self, title: str, artist: str, file_extension: str) -> Path:
        """
        Generates a final, sanitized file name from the template.

        Raises:
            ConfigurationError: If the template names an unknown placeholder.
        """
        template_vars = {
            "title": sanitize_filename(title or "Unknown Title"),
            "artist": sanitize_filename(artist or "Unknown Artist"),
            "ext": file_extension,
        }
        try:
            file_name = self.template.format(**template_vars)
        except (KeyError, IndexError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid output template '{self.template}': {e!r}"
            ) from e
        return Path(sanitize_filename(file_name))
