"""HTML rendering for directory listings and error pages."""

from collections import namedtuple
from datetime import datetime
from urllib.parse import quote

UNITS = ("B", "KB", "MB", "GB", "TB", "PB")

Crumb = namedtuple("Crumb", ["label", "href"])
Row = namedtuple("Row", ["icon", "name", "size", "modified", "href", "action"])


def human_size(size):
    """Convert bytes to a human readable size using base-2 units."""
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(UNITS) - 1:
        value /= 1024
        unit += 1
    if unit == 0:
        return f"{size} B"
    return f"{value:.2f} {UNITS[unit]}"


def format_mtime(timestamp):
    if timestamp is None:
        return "-"
    try:
        return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return "-"


def split_segments(path):
    return [segment for segment in path.split("/") if segment]


def encode_segments(segments):
    return "/".join(quote(segment, safe="") for segment in segments)


def browse_href(segments):
    if not segments:
        return "/"
    return "/browse/" + encode_segments(segments)


def download_href(segments):
    return "/download/" + encode_segments(segments)


def breadcrumbs(current_path):
    """Home link followed by one crumb per segment; the last is not a link."""
    segments = split_segments(current_path)
    crumbs = [Crumb("Home", "/")]
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        crumbs.append(Crumb(segment, None if last else browse_href(segments[: index + 1])))
    return crumbs


def back_href(current_path):
    segments = split_segments(current_path)
    if not segments:
        return None
    return browse_href(segments[:-1])


def make_row(entry, parent):
    segments = parent + [entry.name]
    if entry.is_dir:
        return Row("📁", entry.name, "-", format_mtime(entry.modified), browse_href(segments), "Open")
    return Row(
        "📄",
        entry.name,
        human_size(entry.size),
        format_mtime(entry.modified),
        download_href(segments),
        "Download",
    )


class ListingPresenter:
    """Renders listings with templates loaded once at construction.

    ``environment`` is a Jinja environment with autoescaping enabled for
    ``.html`` templates (Flask's ``app.jinja_env``), so names are entity
    escaped by the template and link targets are percent-encoded here.
    """

    def __init__(self, environment):
        self.index_template = environment.get_template("index.html")
        self.error_template = environment.get_template("error.html")

    def render_listing(self, listing):
        current = listing.request_path
        parent = split_segments(current)
        return self.index_template.render(
            title_suffix=f" - {current}" if parent else " - home",
            breadcrumbs=breadcrumbs(current),
            back_href=back_href(current),
            rows=[make_row(entry, parent) for entry in listing.entries],
            qr_href="/qr.png?path=" + quote(current, safe=""),
        )

    def render_error(self, status, message):
        return self.error_template.render(status=status, error_message=message)
