# /// script
# requires-python = ">=3.8"
# dependencies = [
#     "genutility[args,rich]",
#     "rich",
# ]
# ///
import logging
import re
from argparse import ArgumentParser
from enum import Enum
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional

from genutility.args import future_file
from genutility.rich import MarkdownHighlighter
from rich.logging import RichHandler

logger = logging.getLogger(__name__)

DELIMITER = "=" * 30
GLOBAL_PREFIX = "Host *"
SUCCESS_MESSAGE = "✅ SSH config sorted and updated successfully!"
HOST_KEYWORD = re.compile(r"Host(?:\s|$)")


class ServerKind(Enum):
    GITHUB = "GitHub"
    SSH = "SSH"


class HostLabel(NamedTuple):
    kind: Optional[ServerKind]
    domain: Optional[str]


UNRECOGNIZED = HostLabel(None, None)

_KIND_TOKENS = {
    "Host github": ServerKind.GITHUB,
    "Host ssh": ServerKind.SSH,
}


def is_host_line(line: str) -> bool:
    return HOST_KEYWORD.match(line) is not None


def is_directive(line: str) -> bool:
    return bool(line) and not line.startswith("#")


def split_blocks(lines: Iterable[str]) -> List[List[str]]:
    """Group lines into blocks which each start with a `Host` line.

    Lines before the first `Host` line are dropped, as are comments and empty lines.
    The last line is always added to the block in progress, whatever it contains.
    If it is a `Host` line it does not start a block of its own.
    """

    lines = list(lines)
    last = len(lines) - 1

    blocks: List[List[str]] = []
    current: List[str] = []

    for i, line in enumerate(lines):
        if i == last:
            if current:
                if not is_directive(line) or is_host_line(line):
                    logger.debug("Adding last line `%s` to block `%s`", line, current[0])
                current.append(line)
                blocks.append(current)
            else:
                logger.debug("Dropping last line `%s` outside of any block", line)
        elif is_host_line(line):
            if current:
                blocks.append(current)
            current = [line]
        elif not current:
            logger.debug("Dropping line `%s` before first Host line", line)
        elif is_directive(line):
            current.append(line)

    return blocks


def clean_block(block: Iterable[str]) -> str:
    return "\n".join(line for line in block if is_directive(line))


def is_global(block: str) -> bool:
    return block.startswith(GLOBAL_PREFIX)


def classify_host(header: str) -> HostLabel:
    """Recognize headers of the form `Host github.<domain>` and `Host ssh.<domain>`.
    Only the exact kind token matches and `domain` is the text between the first and second dot.
    """

    parts = header.split(".")
    # a bare `Host github` has no domain to show, so it gets no banner
    if len(parts) < 2:
        return UNRECOGNIZED

    kind = _KIND_TOKENS.get(parts[0])
    if kind is None:
        return UNRECOGNIZED

    return HostLabel(kind, parts[1])


def banner(title: str) -> str:
    return f"# {DELIMITER}\n# {title}\n# {DELIMITER}"


def format_host(block: str) -> str:
    header = block.split("\n", 1)[0]
    label = classify_host(header)

    if label.kind is None:
        return f"\n{block}"

    logger.debug("Adding %s banner for `%s`", label.kind.value, header)
    return "\n" + banner(f"{label.kind.value} [{label.domain}] Server") + f"\n{block}"


def format_config(text: str) -> str:
    lines = [line for line in text.split("\n") if line]
    blocks = [clean_block(block) for block in split_blocks(lines)]
    logger.debug("Found %d blocks", len(blocks))

    globals_ = sorted(block for block in blocks if is_global(block))
    hosts = sorted(block for block in blocks if not is_global(block))
    logger.debug("%d global blocks, %d host blocks", len(globals_), len(hosts))

    out = "\n".join(
        [
            banner("Global SSH settings"),
            "\n".join(globals_),
            "\n".join(format_host(block) for block in hosts),
        ]
    )
    return out.strip()


def sort_ssh_config(inpath: Path, outpath: Optional[Path] = None) -> None:
    if outpath is None:
        outpath = inpath

    with open(inpath, encoding="utf-8", newline="") as fr:
        text = fr.read()

    content = format_config(text)

    with open(outpath, "wt", encoding="utf-8", newline="") as fw:
        fw.write(content)

    logger.info("Wrote sorted config to %s", outpath)


def main() -> None:
    parser = ArgumentParser(description="Sort SSH client config blocks and annotate known hosts in place.")
    parser.add_argument("path", type=Path, help="SSH config file, for example ~/.ssh/config")
    parser.add_argument("-o", "--out", type=future_file, help="Write result to this file instead of overwriting path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    args = parser.parse_args()

    handler = RichHandler(log_time_format="%Y-%m-%d %H-%M-%S%Z", highlighter=MarkdownHighlighter())
    FORMAT = "%(message)s"

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format=FORMAT, handlers=[handler])
    else:
        logging.basicConfig(level=logging.INFO, format=FORMAT, handlers=[handler])

    sort_ssh_config(args.path, args.out)
    print(SUCCESS_MESSAGE)


if __name__ == "__main__":
    main()
