import argparse
import os
import sys
from urllib.parse import quote

import requests
from tqdm import tqdm

CHUNK_SIZE = 8192


def quote_path(path):
    return "/".join(quote(segment, safe="") for segment in path.split("/") if segment)


def fetch_listing(server_url, path=""):
    """Return the file entries of one remote directory, in server order."""
    response = requests.get(f"{server_url}/api/list/{quote_path(path)}", timeout=30)
    response.raise_for_status()
    entries = response.json().get("entries", [])
    # never let a remote name climb out of the save directory
    return [
        entry for entry in entries
        if not entry["is_dir"] and entry["name"] not in ("", ".", "..") and os.path.basename(entry["name"]) == entry["name"]
    ]


def needs_download(save_path, size):
    """Existing files of the same size are left alone."""
    return not (os.path.isfile(save_path) and os.path.getsize(save_path) == size)


def download_file(server_url, remote_path, save_path, size, overall_progress=None):
    with tqdm(
        total=size, unit='B', unit_scale=True, unit_divisor=1024, desc=f"Downloading: {os.path.basename(save_path)}"
    ) as file_progress:
        with requests.get(f"{server_url}/download/{quote_path(remote_path)}", stream=True, timeout=30) as r:
            r.raise_for_status()
            with open(save_path, 'wb') as f:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
                    file_progress.update(len(chunk))
                    if overall_progress is not None:
                        overall_progress.update(len(chunk))


def main(argv=None):
    parser = argparse.ArgumentParser(description="Download the files of one folder from a file-serve server.")
    parser.add_argument('--host', '-H', default='http://localhost:8080', help="Host of the server")
    parser.add_argument('--path', '-p', default='', help="Remote folder, relative to the served root")
    parser.add_argument('--directory', '-d', required=True, help="Directory to save downloaded files")
    args = parser.parse_args(argv)

    server_url = args.host.rstrip('/')
    save_directory = os.path.abspath(args.directory)
    if not os.path.isdir(save_directory):
        choice = input(f"Directory '{save_directory}' does not exist. Create it? (y/n): ").strip().lower()
        if choice != "y":
            print(f"Error: '{save_directory}' is not a valid directory.")
            sys.exit(1)
        os.makedirs(save_directory)
        print(f"Created directory: {save_directory}")

    try:
        files = fetch_listing(server_url, args.path)
    except requests.RequestException as e:
        print(f"Error: could not list '{args.path or '/'}': {e}")
        sys.exit(1)

    print("Files to be downloaded:")
    for file in files:
        print(f" - {file['name']} ({file['size']} bytes)")

    total_size = sum(file['size'] for file in files)
    with tqdm(
        total=total_size, unit='B', unit_scale=True, unit_divisor=1024, desc="Overall Progress"
    ) as overall_progress:
        for file in files:
            save_path = os.path.join(save_directory, file['name'])
            if not needs_download(save_path, file['size']):
                print(f"Skipping: {file['name']} (already exists with the same size)")
                overall_progress.update(file['size'])
                continue
            if os.path.isfile(save_path):
                size_difference = file['size'] - os.path.getsize(save_path)
                print(f"Replacing: {file['name']} (size difference: {size_difference} bytes)")
            remote_path = f"{args.path.strip('/')}/{file['name']}" if args.path.strip('/') else file['name']
            download_file(server_url, remote_path, save_path, file['size'], overall_progress)


if __name__ == "__main__":
    main()
