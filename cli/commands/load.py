"""
Metaload CLI - Load Command
Usage:
    python -m cli.commands.load json:///var/lib/meta.json meta-dump.json.gz
    python -m cli.commands.load json:///var/lib/meta.json meta-dump.bin --binary --threads 10
    python -m cli.commands.load meta-dump.bin --binary --stat [--offset -1]
"""
import argparse
import sys

from metaload.config import MetaloadConfig
from metaload.crypto.encryptor import Algorithm
from metaload.crypto.keys import KeyLoader
from metaload.errors import MetaEngineError, MetaloadError
from metaload.meta.client import LoadOption, new_client, remove_password
from metaload.pipeline.converter import Converter
from metaload.pipeline.reader import StreamComposer
from metaload.tools.inspector import Inspector
from metaload.utils.logger import close_logger, setup_logger
from metaload.utils.progress import ProgressBars


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metaload",
        description="Load metadata from a previously dumped file, or show statistics of a binary backup",
        epilog="WARNING: do not use the new engine and the old one at the same time, "
               "otherwise it will probably break consistency of the volume."
    )
    parser.add_argument("meta_url", metavar="META-URL",
                        help="Metadata store to load into (with --stat: the backup file)")
    parser.add_argument("file", metavar="FILE", nargs="?",
                        help="Backup file; read from stdin when omitted (JSON mode only)")
    parser.add_argument("--encrypt-rsa-key",
                        help="RSA private key (PEM text or a path to a PEM file)")
    parser.add_argument("--encrypt-algo", choices=[a.value for a in Algorithm], default=None,
                        help="Encrypt algorithm (default: aes256gcm-rsa)")
    parser.add_argument("--binary", action="store_true",
                        help="Load metadata from a binary backup (different from the JSON format)")
    parser.add_argument("--stat", action="store_true",
                        help="Show statistics of the binary backup")
    parser.add_argument("--offset", type=int, default=None,
                        help="Segment offset (with --binary --stat). Use -1 to show all offsets")
    parser.add_argument("--threads", type=int, default=None,
                        help="Number of threads to load binary metadata (default: 10)")
    parser.add_argument("--config", help="Path to a metaload.config.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def run(args, config: MetaloadConfig, logger):
    key = args.encrypt_rsa_key
    algo = args.encrypt_algo or config.encrypt_algo
    threads = args.threads or config.threads

    composer = StreamComposer(KeyLoader(config.passphrase_env, logger=logger), logger=logger)
    src = args.file

    if args.binary:
        if args.stat:
            src = args.meta_url
        if not src:
            raise MetaEngineError("binary mode needs a backup FILE")
        src = Converter(composer, chunk_size=config.chunk_size, logger=logger).materialize(src, key, algo)
        if args.stat:
            Inspector(logger=logger).stat(src, args.offset)
            return

    meta_url = remove_password(args.meta_url)
    client = new_client(args.meta_url, logger=logger)
    existing = client.load(check=False)
    if existing is not None:
        raise MetaEngineError(f"database {meta_url} is used by volume {existing.get('name')}")

    if args.binary:
        bars = ProgressBars()
        option = LoadOption(threads=threads, progress=bars.incr)
        with open(src, 'rb') as fp:
            client.load_meta_v2(fp, option)
        bars.done()
    elif src is None:
        src = 'STDIN'
        client.load_meta(sys.stdin.buffer)
    else:
        with composer.open(src, key, algo) as reader:
            client.load_meta(reader)

    fmt = client.load(check=True)
    if fmt is None:
        raise MetaEngineError(f"no volume found in {meta_url} after load")
    if fmt.get('secret_key') == 'removed':
        logger.warning("secret key was removed; please correct it with `config` command")
    logger.info(f"load metadata from {src} succeed")


def main(argv=None):
    args = build_parser().parse_args(argv)
    logger = setup_logger(verbose=args.verbose)

    try:
        config = MetaloadConfig(args.config, logger=logger)
        run(args, config, logger)

    except KeyboardInterrupt:
        print("\n❌ Operation cancelled by user.")
        sys.exit(130)
    except MetaloadError as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Load failed: {e}", exc_info=args.verbose)
        sys.exit(1)
    finally:
        close_logger(logger)


if __name__ == "__main__":
    main()
