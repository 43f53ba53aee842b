import argparse
import sys
import asyncio
import posixpath
import uvicorn

from linuxfr_epub.models import log, log_to_file, sanitize_filename, ConversionError
from linuxfr_epub.core.converter import build_epub
from linuxfr_epub.core.settings import get_settings, load_settings

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Serve LinuxFr.org contents as EPUB")
    parser.add_argument("-a", "--address", help="Bind to this address:port (default: 127.0.0.1:9000)")
    parser.add_argument("-l", "--logs", help="Use this file for logs ('-' for stderr)")
    parser.add_argument("-H", "--host", help="Use this host to fetch pages (default: linuxfr.org)")
    parser.add_argument("-c", "--config", help="YAML settings file")
    parser.add_argument("--convert", metavar="PATH", help="Convert a single path (e.g. /news/foo.epub) and exit")
    parser.add_argument("-o", "--output", help="Output filename for --convert")
    return parser.parse_args(argv)

async def convert_one(path: str, output: str, settings) -> int:
    try:
        body, url = await build_epub(path, settings)
    except ConversionError as e:
        log.error(f"Conversion failed for {path}: {e}")
        return 1
    with open(output, 'wb') as f:
        f.write(body)
    log.info(f"Wrote EPUB: {output} ({url})")
    return 0

def main(argv=None) -> int:
    args = parse_args(argv)
    if args.config:
        load_settings(args.config)
    settings = get_settings(address=args.address, host=args.host, log_file=args.logs)

    if settings.log_file != "-":
        try:
            log_to_file(settings.log_file)
        except OSError as e:
            log.critical(f"OpenFile: {e}")
            return 1

    if args.convert:
        path = args.convert if args.convert.endswith(".epub") else f"{args.convert}.epub"
        output = args.output or f"{sanitize_filename(posixpath.basename(path)[:-5])}.epub"
        return asyncio.run(convert_one(path, output, settings))

    import server
    server.app.state.settings = settings
    host, _, port = settings.address.rpartition(":")
    log.info(f"Listening on http://{settings.address}/")
    try:
        uvicorn.run(server.app, host=host or "127.0.0.1", port=int(port), log_config=None)
    except (OSError, SystemExit) as e:
        log.critical(f"ListenAndServe: {e}")
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
