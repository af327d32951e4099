"""Command line entry point: ``python -m allowhtml [FILE]``."""

import argparse
import sys

from .errors import SanitizeError
from .policies import strict_policy, strip_tags_policy, ugc_policy
from .tokenizer import TokenizerOpts

POLICIES = {
    "ugc": ugc_policy,
    "strict": strict_policy,
    "strip": strip_tags_policy,
}


def main(argv=None):
    parser = argparse.ArgumentParser(prog="allowhtml", description="Sanitize an HTML fragment")
    parser.add_argument("file", nargs="?", help="File to read (default: stdin)")
    parser.add_argument(
        "--policy",
        "-p",
        choices=sorted(POLICIES),
        default="ugc",
        help="Policy to apply (default: ugc)",
    )
    parser.add_argument("--max-buffer", type=int, default=None, help="Largest token accepted, in characters")
    parser.add_argument("--debug", action="store_true", help="Trace sanitizer decisions")
    args = parser.parse_args(argv)

    policy = POLICIES[args.policy]()
    opts = TokenizerOpts(max_buffer=args.max_buffer)
    try:
        if args.file:
            with open(args.file, "rb") as reader:
                policy.sanitize_reader_to_writer(reader, sys.stdout, debug=args.debug, tokenizer_opts=opts)
        else:
            policy.sanitize_reader_to_writer(sys.stdin.buffer, sys.stdout, debug=args.debug, tokenizer_opts=opts)
    except SanitizeError as exc:
        print(f"allowhtml: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"allowhtml: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
