"""Build the claude command line from a configuration."""

from __future__ import annotations

from clau.config import ClauConfig, StreamFormat


def build_command(config: ClauConfig, query: str) -> list[str]:
    """Build the CLI arguments (without the binary) for one request.

    Returns:
        List of command line arguments, with ``query`` always last.
    """
    args = ["-p"]

    if config.stream_format is StreamFormat.JSON:
        args.extend(["--output-format", "json"])
    elif config.stream_format is StreamFormat.STREAM_JSON:
        # stream-json output requires --verbose
        args.extend(["--output-format", "stream-json", "--verbose"])

    if config.verbose and config.stream_format is not StreamFormat.STREAM_JSON:
        args.append("--verbose")

    if config.system_prompt is not None:
        args.extend(["--system-prompt", config.system_prompt])

    if config.model is not None:
        args.extend(["--model", config.model])

    if config.mcp_config_path is not None:
        args.extend(["--mcp-config", str(config.mcp_config_path)])

    for tool in config.allowed_tools or ():
        args.extend(["--allowedTools", tool])

    if config.max_tokens is not None:
        args.extend(["--max-tokens", str(config.max_tokens)])

    args.append(query)
    return args


__all__ = ["build_command"]
