"""Pre-built workflow templates for common research patterns.

Templates skip AI planning entirely: a matched goal is turned into a ready
step list by the template's ``build_steps`` function.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..constants import DEPTH_RESULTS
from ..contracts import (
    AggregateParams,
    AggregateStep,
    AnalyzeParams,
    AnalyzeStep,
    ExtractParams,
    ExtractStep,
    GenerateReportParams,
    GenerateReportStep,
    SearchParams,
    SearchStep,
    Step,
)


@dataclass(frozen=True)
class WorkflowTemplate:
    """Static catalog entry recognising one family of research goals."""

    id: str
    name: str
    description: str
    patterns: Tuple[re.Pattern[str], ...]
    keywords: Tuple[str, ...]
    default_sources: Tuple[str, ...]
    default_format: str
    build_steps: Callable[[str, str], List[Step]]
    build_title: Callable[[str], str]


class TemplateRegistry:
    """Immutable, ordered collection of workflow templates.

    Iteration order is registration order, which also decides ties when
    matching goals.
    """

    def __init__(self, templates: Iterable[WorkflowTemplate]) -> None:
        self._templates: Tuple[WorkflowTemplate, ...] = tuple(templates)
        ids = [template.id for template in self._templates]
        duplicates = {tid for tid in ids if ids.count(tid) > 1}
        if duplicates:
            raise ValueError(f"Duplicate template ids: {sorted(duplicates)}")
        self._by_id = {template.id: template for template in self._templates}

    def __iter__(self) -> Iterator[WorkflowTemplate]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def get(self, template_id: str) -> Optional[WorkflowTemplate]:
        return self._by_id.get(template_id)

    @property
    def ids(self) -> List[str]:
        return [template.id for template in self._templates]


def _patterns(*sources: str) -> Tuple[re.Pattern[str], ...]:
    return tuple(re.compile(source, re.IGNORECASE) for source in sources)


def results_for_depth(depth: str) -> int:
    return DEPTH_RESULTS.get(depth, DEPTH_RESULTS["standard"])


def _year() -> int:
    return datetime.now().year


# ----------------------------------------------------------------------
# Tech comparison


def _tech_comparison_steps(topic: str, depth: str) -> List[Step]:
    num = results_for_depth(depth)
    return [
        SearchStep(
            index=0,
            title=f"Search web for {topic}",
            description=f"Find articles and reviews comparing {topic}",
            params=SearchParams(source="web", query=f"best {topic} comparison {_year()}", num=num),
        ),
        SearchStep(
            index=1,
            title=f"Search code repositories for {topic}",
            description=f"Find popular repositories related to {topic}",
            params=SearchParams(source="code-repository", query=topic, sort="stars", num=num),
        ),
        ExtractStep(
            index=2,
            title="Extract key features & metrics",
            description="Pull out names, stars, features, pros/cons from search results",
            params=ExtractParams(
                extraction_goal=(
                    f"Extract comparison data for {topic}: name, description, key features, "
                    "pros, cons, popularity metrics"
                ),
                fields=["name", "description", "features", "pros", "cons", "stars", "popularity"],
                from_step=0,
            ),
            depends_on=[0, 1],
        ),
        AnalyzeStep(
            index=3,
            title="Compare and rank options",
            description=f"Analyze and rank {topic} based on features, popularity, and community health",
            params=AnalyzeParams(
                analysis_type="comparison",
                question=(
                    f"Compare these {topic} options. Which is best for different use cases? "
                    "Rank them by popularity, features, and developer experience."
                ),
                from_steps=[1, 2],
            ),
            depends_on=[2],
        ),
        GenerateReportStep(
            index=4,
            title="Generate comparison report",
            description=f"Create a detailed comparison report for {topic}",
            params=GenerateReportParams(report_format="comparison"),
            depends_on=[3],
        ),
    ]


TECH_COMPARISON = WorkflowTemplate(
    id="tech-comparison",
    name="Tech Comparison",
    description="Compare technologies by repository stats, features, and community activity",
    patterns=_patterns(
        r"compare\s+(?:the\s+)?(?:top\s+\d+\s+)?(.+?)(?:\s+(?:frameworks?|libraries?|tools?|packages?|solutions?))?$",
        r"(.+?)\s+vs\.?\s+(.+)",
        r"(?:what|which)\s+(?:are|is)\s+(?:the\s+)?(?:best|top)\s+(.+?)(?:\s+(?:frameworks?|libraries?|tools?|packages?))?$",
        r"comparison\s+(?:of|between)\s+(.+)",
    ),
    keywords=(
        "compare",
        "vs",
        "versus",
        "comparison",
        "best",
        "top",
        "alternative",
        "framework",
        "library",
        "tool",
    ),
    default_sources=("web", "code-repository"),
    default_format="comparison",
    build_steps=_tech_comparison_steps,
    build_title=lambda topic: f"{topic} Comparison",
)


# ----------------------------------------------------------------------
# Market research


def _market_research_steps(topic: str, depth: str) -> List[Step]:
    num = results_for_depth(depth)
    return [
        SearchStep(
            index=0,
            title=f"Research {topic} market landscape",
            description=f"Search for market overview, key players, and trends in {topic}",
            params=SearchParams(
                source="web", query=f"{topic} market landscape trends {_year()}", num=num
            ),
        ),
        SearchStep(
            index=1,
            title=f"Find {topic} competitors & pricing",
            description="Search for competitor analysis and pricing information",
            params=SearchParams(
                source="web", query=f"{topic} competitors pricing comparison review", num=num
            ),
        ),
        ExtractStep(
            index=2,
            title="Extract market data",
            description="Pull key players, pricing, market size, and growth data",
            params=ExtractParams(
                extraction_goal=(
                    f"Extract market data for {topic}: company names, products, pricing, "
                    "market share, growth metrics, strengths, weaknesses"
                ),
                fields=["company", "product", "pricing", "marketShare", "strengths", "weaknesses"],
                from_step=0,
            ),
            depends_on=[0, 1],
        ),
        AnalyzeStep(
            index=3,
            title="Analyze market position & trends",
            description=f"Deep analysis of {topic} market dynamics and competitive landscape",
            params=AnalyzeParams(
                analysis_type="market_analysis",
                question=(
                    f"Analyze the {topic} market: Who are the key players? What are the trends? "
                    "Where are the opportunities? What's the competitive landscape?"
                ),
                from_steps=[0, 1, 2],
            ),
            depends_on=[2],
        ),
        GenerateReportStep(
            index=4,
            title="Generate market research report",
            description=f"Create a comprehensive market analysis report for {topic}",
            params=GenerateReportParams(report_format="analysis"),
            depends_on=[3],
        ),
    ]


MARKET_RESEARCH = WorkflowTemplate(
    id="market-research",
    name="Market Research",
    description="Research products, competitors, pricing, and market trends",
    patterns=_patterns(
        r"(?:research|analyze|study)\s+(?:the\s+)?(?:market\s+(?:for|of)\s+)?(.+?)(?:\s+market)?$",
        r"market\s+(?:research|analysis)\s+(?:for|on|about)\s+(.+)",
        r"(?:find|explore|investigate)\s+(?:competitors?|alternatives?)\s+(?:for|to|of)\s+(.+)",
        r"(?:industry|market|competitive)\s+analysis\s+(?:for|of|on)\s+(.+)",
    ),
    keywords=("market", "research", "competitor", "industry", "pricing", "trend", "landscape"),
    default_sources=("web",),
    default_format="analysis",
    build_steps=_market_research_steps,
    build_title=lambda topic: f"{topic} Market Research",
)


# ----------------------------------------------------------------------
# Visual research


def _image_research_steps(topic: str, depth: str) -> List[Step]:
    num = results_for_depth(depth)
    return [
        SearchStep(
            index=0,
            title=f"Search web for {topic} context",
            description=f"Find articles and background on {topic}",
            params=SearchParams(
                source="web", query=f"{topic} design trends visual style", num=min(num, 5)
            ),
        ),
        SearchStep(
            index=1,
            title=f"Find {topic} images",
            description=f"Search for high-quality {topic} images",
            params=SearchParams(source="image", query=topic, num=num),
        ),
        AnalyzeStep(
            index=2,
            title="Analyze visual themes & styles",
            description=f"Identify visual patterns, color palettes, and styles in {topic} imagery",
            params=AnalyzeParams(
                analysis_type="visual_analysis",
                question=(
                    f"Analyze the visual themes and styles found in these {topic} search results "
                    "and images. What are the dominant colors, compositions, and design patterns?"
                ),
                from_steps=[0, 1],
            ),
            depends_on=[0, 1],
        ),
        GenerateReportStep(
            index=3,
            title="Generate visual research summary",
            description=f"Create a summary of {topic} visual research findings",
            params=GenerateReportParams(report_format="summary"),
            depends_on=[2],
        ),
    ]


IMAGE_RESEARCH = WorkflowTemplate(
    id="image-research",
    name="Visual Research",
    description="Find and organize images with context analysis",
    patterns=_patterns(
        r"(?:find|search|get|collect)\s+(?:images?|photos?|pictures?|visuals?)\s+(?:of|for|about|related to)\s+(.+)",
        r"(?:visual|image|photo)\s+research\s+(?:for|on|about)\s+(.+)",
        r"(?:mood\s*board|inspiration|visual\s+reference)\s+(?:for|of|about)\s+(.+)",
    ),
    keywords=("image", "photo", "visual", "picture", "moodboard", "inspiration", "reference"),
    default_sources=("web", "image"),
    default_format="summary",
    build_steps=_image_research_steps,
    build_title=lambda topic: f"{topic} Visual Research",
)


# ----------------------------------------------------------------------
# Repository deep dive


def _repository_deep_dive_steps(topic: str, depth: str) -> List[Step]:
    num = results_for_depth(depth)
    return [
        SearchStep(
            index=0,
            title=f"Find top {topic} repositories",
            description=f"Search for the most popular {topic} repositories by stars",
            params=SearchParams(source="code-repository", query=topic, sort="stars", num=num),
        ),
        SearchStep(
            index=1,
            title=f"Find recently updated {topic} repos",
            description=f"Search for the most recently active {topic} projects",
            params=SearchParams(
                source="code-repository", query=topic, sort="updated", num=min(num, 5)
            ),
        ),
        SearchStep(
            index=2,
            title=f"Research {topic} ecosystem context",
            description=f"Find articles about the {topic} open source ecosystem",
            params=SearchParams(
                source="web",
                query=f"{topic} open source ecosystem best repos {_year()}",
                num=5,
            ),
        ),
        AggregateStep(
            index=3,
            title="Combine repository data",
            description="Merge data from both repository searches",
            params=AggregateParams(from_steps=[0, 1], merge_strategy="combine"),
            depends_on=[0, 1],
        ),
        AnalyzeStep(
            index=4,
            title="Analyze repository health & trends",
            description=f"Analyze {topic} repos by stars, activity, community health, and momentum",
            params=AnalyzeParams(
                analysis_type="repository_analysis",
                question=(
                    f"Analyze these {topic} repositories. Which have the most momentum? "
                    "Which are most mature? What patterns exist in the ecosystem?"
                ),
                from_steps=[2, 3],
            ),
            depends_on=[2, 3],
        ),
        GenerateReportStep(
            index=5,
            title="Generate ecosystem analysis report",
            description=f"Create an analysis of the {topic} open source ecosystem",
            params=GenerateReportParams(report_format="analysis"),
            depends_on=[4],
        ),
    ]


REPOSITORY_DEEP_DIVE = WorkflowTemplate(
    id="github-deep-dive",
    name="Repository Deep Dive",
    description="Analyze code repositories, activity, and the open source ecosystem",
    patterns=_patterns(
        r"(?:analyze|research|explore)\s+(?:github|repos?|repositories?)\s+(?:for|about|related to)\s+(.+)",
        r"(?:open\s*source|github)\s+(?:ecosystem|landscape|projects?)\s+(?:for|in|about)\s+(.+)",
        r"(?:trending|popular|active)\s+(?:github\s+)?repos?\s+(?:for|in|about)\s+(.+)",
    ),
    keywords=("github", "repository", "open source", "repo", "trending", "stars"),
    default_sources=("code-repository", "web"),
    default_format="analysis",
    build_steps=_repository_deep_dive_steps,
    build_title=lambda topic: f"{topic} Repository Analysis",
)


# ----------------------------------------------------------------------
# Trend & timeline


def _trend_timeline_steps(topic: str, depth: str) -> List[Step]:
    num = results_for_depth(depth)
    return [
        SearchStep(
            index=0,
            title=f"Research history of {topic}",
            description=f"Find articles about the history and evolution of {topic}",
            params=SearchParams(
                source="web", query=f"history evolution timeline of {topic}", num=num
            ),
        ),
        SearchStep(
            index=1,
            title=f"Find recent {topic} trends",
            description=f"Search for current trends and developments in {topic}",
            params=SearchParams(
                source="web", query=f"{topic} trends {_year()} latest developments", num=num
            ),
        ),
        ExtractStep(
            index=2,
            title="Extract key events & milestones",
            description=f"Pull out dates, events, and milestones from {topic} history",
            params=ExtractParams(
                extraction_goal=(
                    f"Extract chronological events, milestones, and key dates from the "
                    f"history of {topic}"
                ),
                fields=["date", "event", "significance", "impact"],
                from_step=0,
            ),
            depends_on=[0],
        ),
        AnalyzeStep(
            index=3,
            title="Analyze trends & future direction",
            description=f"Analyze how {topic} has evolved and where it's heading",
            params=AnalyzeParams(
                analysis_type="trend_analysis",
                question=(
                    f"Analyze the evolution of {topic}. What are the major inflection points? "
                    "What trends are emerging? Where is this heading?"
                ),
                from_steps=[1, 2],
            ),
            depends_on=[1, 2],
        ),
        GenerateReportStep(
            index=4,
            title="Generate timeline report",
            description=f"Create a timeline report tracing the evolution of {topic}",
            params=GenerateReportParams(report_format="timeline"),
            depends_on=[3],
        ),
    ]


TREND_TIMELINE = WorkflowTemplate(
    id="trend-timeline",
    name="Trend & Timeline",
    description="Research the evolution and timeline of a topic",
    patterns=_patterns(
        r"(?:history|evolution|timeline)\s+(?:of|for)\s+(.+)",
        r"(?:how\s+has|how\s+did)\s+(.+?)\s+(?:evolved?|changed?|developed?|grown?)",
        r"(?:trend|trends)\s+(?:in|for|of)\s+(.+)",
        r"(?:rise|growth|development)\s+(?:of|in)\s+(.+)",
    ),
    keywords=(
        "history",
        "evolution",
        "timeline",
        "trend",
        "rise",
        "growth",
        "development",
        "over time",
    ),
    default_sources=("web",),
    default_format="timeline",
    build_steps=_trend_timeline_steps,
    build_title=lambda topic: f"{topic} Timeline & Trends",
)


DEFAULT_TEMPLATES: Sequence[WorkflowTemplate] = (
    TECH_COMPARISON,
    MARKET_RESEARCH,
    IMAGE_RESEARCH,
    REPOSITORY_DEEP_DIVE,
    TREND_TIMELINE,
)


def default_registry() -> TemplateRegistry:
    """Build the standard template catalog."""
    return TemplateRegistry(DEFAULT_TEMPLATES)
