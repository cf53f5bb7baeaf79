"""Progress reporting for batch generation from the CLI."""

from tqdm import tqdm


class ProgressReporter:
    """Wraps tqdm for file-level progress reporting."""

    def __init__(self, total_files: int):
        self._bar = tqdm(
            total=total_files,
            desc="Sintesi",
            unit="file",
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} file [{elapsed}<{remaining}]",
        )

    def update(self, name: str, degraded: bool = False) -> None:
        """Advance after a file is synthesized."""
        self._bar.set_postfix_str(f"{name} (segnaposto)" if degraded else name, refresh=False)
        self._bar.update(1)

    def close(self) -> None:
        self._bar.close()
