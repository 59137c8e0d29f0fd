"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use MDECK_ prefix (e.g., MDECK_PLANTUML_SERVER=http://localhost:8080).

Settings can also be loaded from a .env file in the project root.
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use MDECK_ prefix.

    Examples:
        MDECK_PYGMENTS_STYLE=friendly
        MDECK_MERMAID_COMMAND=/opt/node/bin/mmdc
        MDECK_DEBOUNCE_SECONDS=0.5
    """

    model_config = SettingsConfigDict(
        env_prefix="MDECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Block splitting
    slide_separator: str = Field(
        default="---",
        description="Line (after trimming) that separates two slides",
    )

    code_fence: str = Field(
        default="```",
        description="Marker whose presence at the start of a trimmed line toggles code-block state",
    )

    # Slide classes
    default_page_class: str = Field(
        default="normal",
        description="CSS class given to a slide without @pageclass or @cover",
    )

    cover_page_class: str = Field(
        default="cover",
        description="CSS class given to a slide containing @cover",
    )

    # Images
    drawio_marker: str = Field(
        default="@drawio",
        description="Image alt text marking an embedded diagram-editor payload",
    )

    cache_bust_param: str = Field(
        default="_t",
        description="Query parameter appended to image URLs when the cache-bust token is non-zero",
    )

    # Code highlighting
    pygments_style: str = Field(
        default="monokai",
        description="Pygments style used for fenced code blocks",
    )

    highlight_inline_styles: bool = Field(
        default=True,
        description="Emit inline styles (noclasses) so no external pygments CSS is required",
    )

    # Diagrams
    diagram_languages: Dict[str, str] = Field(
        default={"@mermaid": "mermaid", "@plantuml": "plantuml"},
        description="Fence language tag -> diagram dialect (also the placeholder class name)",
    )

    plantuml_server: str = Field(
        default="https://www.plantuml.com/plantuml",
        description="PlantUML server root; SVG is fetched from <server>/svg/<encoded>",
    )

    mermaid_command: str = Field(
        default="mmdc",
        description="mermaid-cli executable used to turn mermaid source into SVG",
    )

    diagram_timeout: float = Field(
        default=30.0,
        description="Seconds to wait for a single external diagram render",
    )

    diagram_cache_size: int = Field(
        default=256,
        description="Rendered diagrams kept, least recently used evicted first",
    )

    html_memo_size: int = Field(
        default=128,
        description="Slide HTML -> final HTML entries kept by the diagram post-processor",
    )

    # Editing session
    debounce_seconds: float = Field(
        default=0.3,
        description="Quiet period before a burst of text changes is compiled",
    )

    watch_interval: float = Field(
        default=0.5,
        description="Polling interval (seconds) of the CLI --watch mode",
    )

    def diagramDialect_find(self, language: str) -> Optional[str]:
        """
        Map a fence language tag to a diagram dialect.

        Args:
            language: Trimmed info string of a fenced code block

        Returns:
            Dialect name (e.g. "mermaid") or None for ordinary code

        Example:
            >>> settings = AppSettings()
            >>> settings.diagramDialect_find('@mermaid')
            'mermaid'
            >>> settings.diagramDialect_find('python') is None
            True
        """
        return self.diagram_languages.get(language.strip())

    def cacheBust_apply(self, href: str, token: int) -> str:
        """
        Append the cache-bust query parameter to a URL.

        A zero token leaves the URL untouched.

        Example:
            >>> AppSettings().cacheBust_apply('img/a.png', 42)
            'img/a.png?_t=42'
            >>> AppSettings().cacheBust_apply('img/a.png?w=1', 42)
            'img/a.png?w=1&_t=42'
        """
        if token <= 0:
            return href
        separator = "&" if "?" in href else "?"
        return f"{href}{separator}{self.cache_bust_param}={token}"


# Singleton instance - import this in your code
appsettings = AppSettings()
