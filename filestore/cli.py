"""CLI: filestore put | get | delete | exists | url | sign | size | key | zip | censor | serve."""
import argparse
import json
import sys
from pathlib import Path

from filestore.core.config import FilesystemDriver, get_settings
from filestore.storage import StorageBackend, build_upload_key, must_as_qiniu, new_storage
from filestore.storage.fops import MkZipArgs, SaveAs, ZipOptions


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="filestore", description="Local, Qiniu and WebDAV storage")
    parser.add_argument("--config", default=None, help="YAML driver file ({name, config}); default: environment")
    sub = parser.add_subparsers(dest="command", required=True)

    p_put = sub.add_parser("put", help="Upload a local file")
    p_put.add_argument("path", help="Remote path")
    p_put.add_argument("file", help="Local file to upload")
    p_put.set_defaults(func=cmd_put)

    p_get = sub.add_parser("get", help="Download an object")
    p_get.add_argument("path", help="Remote path")
    p_get.add_argument("-o", "--output", default=None, help="Write to file instead of stdout")
    p_get.set_defaults(func=cmd_get)

    p_delete = sub.add_parser("delete", help="Delete an object")
    p_delete.add_argument("path", help="Remote path")
    p_delete.set_defaults(func=cmd_delete)

    p_exists = sub.add_parser("exists", help="Exit 0 when the object exists, 1 otherwise")
    p_exists.add_argument("path", help="Remote path")
    p_exists.set_defaults(func=cmd_exists)

    p_url = sub.add_parser("url", help="Print the unsigned URL")
    p_url.add_argument("path", help="Remote path")
    p_url.set_defaults(func=cmd_url)

    p_sign = sub.add_parser("sign", help="Print a signed URL")
    p_sign.add_argument("path", help="Remote path")
    p_sign.add_argument("--expires", type=int, default=None, help="Lifetime in seconds")
    p_sign.set_defaults(func=cmd_sign)

    p_size = sub.add_parser("size", help="Print image width and height")
    p_size.add_argument("path", help="Remote path")
    p_size.set_defaults(func=cmd_size)

    p_key = sub.add_parser("key", help="Generate a random upload key")
    p_key.add_argument("dir", help="Upload directory")
    p_key.add_argument("ext", help="File extension")
    p_key.set_defaults(func=cmd_key, needs_storage=False)

    p_zip = sub.add_parser("zip", help="Archive URLs into a zip (qiniu only)")
    p_zip.add_argument("urls", nargs="+", help="URL or URL::alias")
    p_zip.add_argument("--save-key", required=True, help="Key of the resulting zip")
    p_zip.add_argument("--save-bucket", default=None, help="Bucket of the resulting zip (default: configured bucket)")
    p_zip.add_argument("--encoding", default="", help="File name encoding inside the zip")
    p_zip.add_argument("--wait", action="store_true", help="Block until the job finishes")
    p_zip.set_defaults(func=cmd_zip)

    p_censor = sub.add_parser("censor", help="Moderate an image (qiniu only)")
    p_censor.add_argument("uri", help="Image URI, or a local file with --file")
    p_censor.add_argument("--file", action="store_true", help="Treat uri as a local file")
    p_censor.add_argument("--scenes", nargs="*", default=None, help="Scenes to check")
    p_censor.set_defaults(func=cmd_censor)

    p_serve = sub.add_parser("serve", help="Run the HTTP app (signed local files, metrics)")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.set_defaults(func=cmd_serve, needs_storage=False)

    args = parser.parse_args(argv)
    try:
        storage = None
        if getattr(args, "needs_storage", True):
            storage = _load_storage(args.config)
        return args.func(storage, args)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _load_storage(config: str | None) -> StorageBackend:
    if config:
        return new_storage(FilesystemDriver.from_yaml(config))
    return new_storage(get_settings().storage_driver())


def cmd_put(storage: StorageBackend, args: argparse.Namespace) -> int:
    local = Path(args.file)
    if not local.is_file():
        print(f"File not found: {local}", file=sys.stderr)
        return 1
    storage.put(args.path, local.read_bytes())
    print(storage.get_url(args.path))
    return 0


def cmd_get(storage: StorageBackend, args: argparse.Namespace) -> int:
    data = storage.get(args.path)
    if args.output:
        Path(args.output).write_bytes(data)
    else:
        sys.stdout.buffer.write(data)
    return 0


def cmd_delete(storage: StorageBackend, args: argparse.Namespace) -> int:
    storage.delete(args.path)
    return 0


def cmd_exists(storage: StorageBackend, args: argparse.Namespace) -> int:
    found = storage.exists(args.path)
    print("yes" if found else "no")
    return 0 if found else 1


def cmd_url(storage: StorageBackend, args: argparse.Namespace) -> int:
    print(storage.get_url(args.path))
    return 0


def cmd_sign(storage: StorageBackend, args: argparse.Namespace) -> int:
    expires = args.expires if args.expires is not None else get_settings().signed_url_ttl_seconds
    print(storage.get_signed_url(args.path, expires))
    return 0


def cmd_size(storage: StorageBackend, args: argparse.Namespace) -> int:
    width, height = storage.get_image_width_height(args.path)
    print(json.dumps({"width": width, "height": height}))
    return 0


def cmd_key(storage: StorageBackend, args: argparse.Namespace) -> int:
    print(build_upload_key(args.dir, args.ext))
    return 0


def cmd_zip(storage: StorageBackend, args: argparse.Namespace) -> int:
    qn = must_as_qiniu(storage)
    urls = {}
    for item in args.urls:
        url, _, alias = item.partition("::")
        urls[url] = alias
    options = ZipOptions(
        save_as=SaveAs(save_bucket=args.save_bucket or qn.bucket.name, save_key=args.save_key),
        wait=args.wait,
    )
    persistent_id = qn.zip(MkZipArgs(encoding=args.encoding, urls=urls), options)
    print(persistent_id)
    return 0


def cmd_censor(storage: StorageBackend, args: argparse.Namespace) -> int:
    censor = must_as_qiniu(storage).new_censor()
    if args.file:
        suggestion, reasons = censor.check_image_data(Path(args.uri).read_bytes(), args.scenes)
    else:
        suggestion, reasons = censor.check_image_by_uri(args.uri, args.scenes)
    print(json.dumps({"suggestion": suggestion.value, "reasons": reasons}, ensure_ascii=False))
    return 0


def cmd_serve(storage: StorageBackend, args: argparse.Namespace) -> int:
    import uvicorn
    uvicorn.run("filestore.main:app", host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
