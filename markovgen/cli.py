"""Command-line interface for training and generation."""

import argparse
import logging
import sys
from typing import List, Optional

import torch

from markovgen.data.corpus import WhitespaceTokenizer
from markovgen.errors import ArgumentError, MarkovError, UnknownCommandError
from markovgen.models.table import FrequencyTable
from markovgen.utils.trainer import Generator, Trainer


logger = logging.getLogger(__name__)

COMMANDS = ('train', 'read', 'generate')


def setup_logging(level=logging.INFO):
    """Configure logging."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def _parse_int(value: str, what: str, minimum: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ArgumentError(f"{what} must be an integer, got {value!r}") from None
    if n < minimum:
        raise ArgumentError(f"{what} must be at least {minimum}, got {n}")
    return n


def positive_int(value: str) -> int:
    return _parse_int(value, 'prefix length', 1)


def non_negative_int(value: str) -> int:
    return _parse_int(value, 'word count', 0)


def train(args):
    """Build a frequency table from the input files."""
    trainer = Trainer(args.prefix_length)
    trainer.train_files(args.inputs)
    table = trainer.save(args.output)
    logger.info(f"Training complete! {len(table)} prefixes written to {args.output}")


def generate(args):
    """Generate text from a saved table."""
    if args.seed is not None:
        torch.manual_seed(args.seed)
    else:
        torch.seed()

    table = FrequencyTable.load(args.table)
    tokenizer = WhitespaceTokenizer()
    prompt = list(tokenizer.encode(args.prompt)) if args.prompt else None

    generator = Generator(table)
    words = generator.generate(args.words, prompt=prompt)
    if len(words) < args.words:
        logger.info(f"Chain exhausted after {len(words)} of {args.words} words")
    print(tokenizer.decode((prompt or []) + words))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='markovgen',
        description='Train and run a word-level Markov chain text generator'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    # Training arguments
    train_parser = subparsers.add_parser('train', aliases=['read'])
    train_parser.add_argument('prefix_length', type=positive_int)
    train_parser.add_argument('output', help='Where to write the table')
    train_parser.add_argument('inputs', nargs='+', help='Text files to train on')
    train_parser.set_defaults(func=train)

    # Generation arguments
    generate_parser = subparsers.add_parser('generate')
    generate_parser.add_argument('table', help='Table written by train')
    generate_parser.add_argument('words', type=non_negative_int)
    generate_parser.add_argument('--prompt', type=str, help='Words to continue from')
    generate_parser.add_argument('--seed', type=int, help='Seed for reproducible output')
    generate_parser.set_defaults(func=generate)

    return parser


def _normalize_command(argv: List[str]) -> List[str]:
    """Lower-case the command name, which may follow global flags."""
    argv = list(argv)
    for i, arg in enumerate(argv):
        if arg.startswith('-'):
            continue
        if arg.lower() not in COMMANDS:
            raise UnknownCommandError(
                f"unknown command {arg!r}, expected one of: {', '.join(COMMANDS)}"
            )
        argv[i] = arg.lower()
        break
    return argv


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()
    try:
        args = parser.parse_args(_normalize_command(argv))
    except UnknownCommandError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return e.exit_code

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        args.func(args)
    except MarkovError as e:
        logger.error(str(e))
        return e.exit_code
    return 0


if __name__ == '__main__':
    sys.exit(main())
