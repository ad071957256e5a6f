import argparse
import logging
import os
import sys
from pathlib import Path

from flask import Flask, Response, jsonify, request, send_file
from qrcode.exceptions import DataOverflowError
from werkzeug.routing import PathConverter

from .errors import InvalidRequestPath, IoFailure, NotFound, ServeError
from .lister import list_directory
from .netinfo import get_local_ip
from .presenter import ListingPresenter, browse_href, split_segments
from .qr import qr_png, terminal_qr
from .resolver import check_request_path, resolve
from .streamer import open_for_download

LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"
LOG_DATEFMT = "%d-%m-%y %H:%M:%S"
DEFAULT_PORT = 8080
DEFAULT_LOG_FILE = os.path.join("logs", "file_serve.log")

logger = logging.getLogger(__name__)


def setup_logging(log_file=DEFAULT_LOG_FILE, level="INFO"):
    """Log to the console and, unless ``log_file`` is empty, to a file."""
    handlers = [logging.StreamHandler()]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        handlers=handlers,
        force=True,
    )


class RawPathConverter(PathConverter):
    """Like ``path`` but keeps a leading slash so absolute paths reach the resolver."""

    regex = ".+?"
    part_isolating = False


def download_response(path):
    download = open_for_download(path)
    response = send_file(
        download.file,
        mimetype=download.content_type,
        as_attachment=True,
        download_name=download.filename,
        conditional=False,
        etag=False,
    )
    response.content_length = download.size
    logger.info("downloading file: %s", path)
    return response


def create_app(root, share_url=None):
    """Build the Flask app serving ``root``.

    ``share_url`` is the LAN address encoded in listing QR codes; the
    request's own host is used when it is not given.
    """
    root = Path(root).resolve(strict=True)
    if not root.is_dir():
        raise NotADirectoryError(f"'{root}' is not a valid directory.")

    app = Flask(__name__)
    # "//etc" must stay distinct from "/etc" so it can be rejected, not redirected
    app.url_map.merge_slashes = False
    app.url_map.converters["rawpath"] = RawPathConverter
    app.config["SERVER_ROOT"] = root
    app.config["SHARE_URL"] = share_url
    # templates are read once here and reused for every request
    presenter = ListingPresenter(app.jinja_env)

    def handle_serve_error(error):
        if isinstance(error, IoFailure):
            logger.error("%s %s -> %s: %s", request.method, request.path, error.status, error.detail)
        else:
            logger.info("%s %s -> %s: %s", request.method, request.path, error.status, error.detail)
        if request.path.startswith("/api/"):
            return jsonify({"error": error.message}), error.status
        return presenter.render_error(error.status, error.message), error.status

    app.register_error_handler(ServeError, handle_serve_error)

    @app.route("/")
    @app.route("/browse/", defaults={"rel_path": ""})
    @app.route("/browse/<rawpath:rel_path>")
    def browse(rel_path=""):
        logger.info(
            "[LIST] Client: %s | UA: %s | path: %r",
            request.remote_addr,
            request.user_agent.string or "-",
            rel_path,
        )
        target = resolve(root, rel_path)
        if not os.path.isdir(target):
            return download_response(target)
        listing = list_directory(target, rel_path)
        return presenter.render_listing(listing)

    @app.route("/download/<rawpath:rel_path>")
    def download(rel_path):
        target = resolve(root, rel_path)
        return download_response(target)

    @app.route("/api/list/", defaults={"rel_path": ""})
    @app.route("/api/list/<rawpath:rel_path>")
    def api_list(rel_path):
        target = resolve(root, rel_path)
        if not os.path.isdir(target):
            raise NotFound("Not a directory")
        listing = list_directory(target, rel_path)
        return jsonify({"path": listing.request_path, "entries": [entry._asdict() for entry in listing.entries]})

    @app.route("/qr.png")
    def qr_code():
        rel_path = request.args.get("path", "")
        check_request_path(rel_path)
        base = app.config["SHARE_URL"] or request.host_url
        url = base.rstrip("/") + browse_href(split_segments(rel_path))
        try:
            png = qr_png(url)
        except DataOverflowError as exc:
            raise InvalidRequestPath("Path too long for a QR code", detail=str(exc)) from exc
        return Response(png, mimetype="image/png")

    return app


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Serve files through your LAN")
    parser.add_argument("--port", "-p", type=int, default=DEFAULT_PORT, help="Server port, defaults to 8080.")
    parser.add_argument("--folder", "-f", default=".", help="Folder to be served, default is current folder.")
    parser.add_argument("--interface", "-i", help="Address shown for other devices, default is the first LAN address.")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE, help="Log file path, empty to log only to the console.")
    parser.add_argument("--log-level", "-l", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    parser.add_argument("--no-qr", action="store_true", help="Do not print a QR code of the address")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_file, args.log_level)

    folder = os.path.abspath(os.path.join(os.getcwd(), args.folder))
    if not os.path.isdir(folder):
        print(f"Error: '{folder}' is not a valid directory.")
        sys.exit(1)

    address = args.interface or get_local_ip()
    share_url = f"http://{address}:{args.port}/"
    app = create_app(folder, share_url=share_url)

    print(f"Serving '{app.config['SERVER_ROOT']}' on:\n    {share_url}\nPress Ctrl+C to stop.")
    if not args.no_qr:
        print(terminal_qr(share_url))
    logger.info("Serving %s on %s", app.config["SERVER_ROOT"], share_url)

    app.run(host="0.0.0.0", port=args.port, threaded=True)


if __name__ == "__main__":
    main()
