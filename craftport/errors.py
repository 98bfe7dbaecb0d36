# errors.py
"""
Custom exception classes with improved error messages for craftport

All exceptions include:
- Clear error description
- Actionable suggestions
- Relevant context
"""
from pathlib import Path
from typing import Optional, Dict, Any


class CraftportError(Exception):
    """Base exception for all craftport errors"""

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        self.cause = cause
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error with all details"""
        lines = [
            "",
            "=" * 70,
            f"❌ {self.__class__.__name__}",
            "=" * 70,
            "",
            self.message,
        ]

        if self.context:
            lines.append("")
            lines.append("Context:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")

        if self.suggestion:
            lines.append("")
            lines.append("💡 Suggestion:")
            lines.append(f"  {self.suggestion}")

        if self.cause:
            lines.append("")
            lines.append(f"Caused by: {type(self.cause).__name__}: {self.cause}")

        lines.append("")
        lines.append("=" * 70)
        lines.append("")

        return "\n".join(lines)


class ConfigurationError(CraftportError):
    """Configuration is missing or invalid"""
    pass


class SourceNotFoundError(CraftportError):
    """Source folder does not exist"""
    pass


class NoSourceFilesError(CraftportError):
    """Source folder holds no markdown files"""
    pass


class AssetDownloadError(CraftportError):
    """Remote asset could not be fetched or stored"""
    pass


class TranscodeError(CraftportError):
    """External image/video conversion failed"""
    pass


# Specific error factory functions

def missing_source_dir_error(src_path: Path) -> SourceNotFoundError:
    """Create error for a missing source folder"""
    return SourceNotFoundError(
        message="Source folder not found",
        suggestion=(
            "Export your Craft documents as markdown into this folder,\n"
            "or point craftport at the export:\n"
            "  craftport migrate --src path/to/export"
        ),
        context={"src_path": str(src_path)}
    )


def no_source_files_error(src_path: Path) -> NoSourceFilesError:
    """Create error when the source folder has nothing to import"""
    return NoSourceFilesError(
        message="No files to import found",
        suggestion="Only *.md files directly inside the source folder are imported",
        context={"src_path": str(src_path)}
    )


def asset_download_error(
    url: str,
    cache_path: Path,
    cause: Optional[Exception] = None
) -> AssetDownloadError:
    """Create error when a remote asset cannot be downloaded"""
    return AssetDownloadError(
        message=f"Failed to download asset: {url}",
        suggestion=(
            "Check your network connection and that the URL is still public.\n"
            "Re-run the migration; nothing partial was left in the cache."
        ),
        context={
            "url": url,
            "cache_path": str(cache_path),
        },
        cause=cause
    )


def transcode_error(
    operation: str,
    input_path: Path,
    output_path: Path,
    details: Optional[str] = None,
    cause: Optional[Exception] = None
) -> TranscodeError:
    """Create error when an external conversion fails"""
    context: Dict[str, Any] = {
        "operation": operation,
        "input": str(input_path),
        "output": str(output_path),
    }
    if details:
        context["details"] = details.strip()[-500:]
    return TranscodeError(
        message=f"Failed to {operation}: {input_path.name}",
        suggestion=(
            "Make sure ffmpeg is installed and on your PATH:\n"
            "  ffmpeg -version"
        ),
        context=context,
        cause=cause
    )


def invalid_config_error(path: Path, cause: Optional[Exception] = None) -> ConfigurationError:
    """Create error for an unreadable craftport.yaml"""
    return ConfigurationError(
        message=f"Invalid configuration file: {path.name}",
        suggestion=(
            "Fix the YAML syntax or regenerate a template:\n"
            "  craftport init --force"
        ),
        context={"path": str(path)},
        cause=cause
    )
