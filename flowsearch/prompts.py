"""Prompt builders for planning, step handlers and report synthesis."""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence, Tuple

from .constants import REPORT_DATA_LIMIT

PromptPair = Tuple[str, str]

JSON_ONLY = "Respond with ONLY valid JSON, no markdown fences."


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def truncate_json(data: Any, limit: int, marker: str = "") -> str:
    """Serialize ``data`` and cut it to ``limit`` characters."""
    text = _dump(data)
    if len(text) > limit:
        return text[:limit] + marker
    return text


# ----------------------------------------------------------------------
# Planning

_PLANNING_EXAMPLES = """Goal: "Compare React, Vue, and Angular"
{
  "title": "React vs Vue vs Angular",
  "description": "Comparison of top frontend frameworks by features, performance, and ecosystem",
  "steps": [
    {"index":0,"type":"search","title":"Search web for framework comparison","description":"Find recent articles comparing React, Vue, Angular","params":{"source":"web","query":"React vs Vue vs Angular comparison features performance","num":10},"dependsOn":[]},
    {"index":1,"type":"search","title":"Check repository stars and activity","description":"Find repositories for each framework","params":{"source":"code-repository","query":"react vue angular framework","sort":"stars","num":10},"dependsOn":[]},
    {"index":2,"type":"extract","title":"Extract framework metrics","description":"Pull key comparison points from results","params":{"extractionGoal":"Extract framework name, stars, features, learning curve, performance benchmarks, ecosystem size, job market demand","fields":["name","stars","features","learningCurve","performance","ecosystem","jobs"],"fromStep":0},"dependsOn":[0,1]},
    {"index":3,"type":"analyze","title":"Compare frameworks head-to-head","description":"Rank frameworks across multiple dimensions","params":{"analysisType":"comparison","question":"Compare React, Vue, and Angular across performance, DX, ecosystem, learning curve, and job market. Which is best for each use case?","fromSteps":[1,2]},"dependsOn":[2]},
    {"index":4,"type":"generate_report","title":"Generate comparison report","description":"Create detailed comparison report","params":{"reportFormat":"comparison"},"dependsOn":[0,1,2,3]}
  ]
}

Goal: "Research AI trends in healthcare"
{
  "title": "AI in Healthcare Trends",
  "description": "Analysis of AI applications and trends in the healthcare industry",
  "steps": [
    {"index":0,"type":"search","title":"Search for AI healthcare trends","description":"Find articles on latest AI healthcare applications","params":{"source":"web","query":"AI healthcare trends applications","num":10},"dependsOn":[]},
    {"index":1,"type":"search","title":"Find specific AI healthcare startups","description":"Search for notable companies and funding","params":{"source":"web","query":"AI healthcare startups funding Series A B","num":10},"dependsOn":[]},
    {"index":2,"type":"extract","title":"Extract key trends and companies","description":"Pull out trend names, companies, funding amounts, and use cases","params":{"extractionGoal":"Extract AI healthcare trend names, company names, funding amounts, use cases, regulatory status","fields":["trend","company","funding","useCase","regulatoryStatus"],"fromStep":0},"dependsOn":[0,1]},
    {"index":3,"type":"analyze","title":"Analyze healthcare AI landscape","description":"Identify patterns, leaders, and opportunities","params":{"analysisType":"trend","question":"What are the dominant AI healthcare trends? Which companies are leading? Where are the biggest opportunities and risks?","fromSteps":[0,1,2]},"dependsOn":[2]},
    {"index":4,"type":"generate_report","title":"Generate analysis report","description":"Create comprehensive healthcare AI analysis","params":{"reportFormat":"analysis"},"dependsOn":[0,1,2,3]}
  ]
}"""


def build_planning_prompt(
    goal: str,
    sources: Sequence[str],
    depth: str,
    output_format: str,
    max_results: int,
    max_steps: int,
) -> PromptPair:
    """Build the system/user prompts asking the model for a step plan."""
    source_list = json.dumps(list(sources))
    system = f"""You are an expert research workflow planner.
Break down research goals into precise, executable step chains.

# STEP TYPES

1. "search" - Query a search source
   params: {{ source: "web"|"code-repository"|"image", query: string, num?: number, sort?: string }}
   Rules:
   - Craft SPECIFIC search queries, NOT the raw user goal
   - Use different queries per search step to maximize coverage
   - "web" for articles, docs, reviews; "code-repository" for repos, code; "image" for images
   - Set num to {max_results} for depth "{depth}"

2. "extract" - Parse specific data from a previous step's results
   params: {{ extractionGoal: string, fields: string[], fromStep: number }}
   Rules:
   - extractionGoal must be detailed and specific
   - fields array defines exact output schema
   - fromStep references the step index with source data

3. "analyze" - AI-powered analysis of collected data
   params: {{ analysisType: string, question: string, fromSteps: number[] }}
   Rules:
   - analysisType: "comparison", "sentiment", "trend", "general", "strengths_weaknesses"
   - question must be specific and answerable from the data
   - fromSteps references ALL steps needed for this analysis

4. "aggregate" - Combine data from multiple steps
   params: {{ fromSteps: number[], mergeStrategy: "combine"|"deduplicate"|"rank" }}
   Rules:
   - Use when 2+ search/extract steps produce data that needs merging
   - "combine" = simple merge, "deduplicate" = remove duplicates, "rank" = AI-ranked

5. "generate_report" - ALWAYS the final step
   params: {{ reportFormat: "{output_format}" }}
   dependsOn: [all previous step indices]

# CONSTRAINTS
- Available sources: {source_list}
- Maximum steps: {max_steps}
- Maximum results per search: {max_results}
- Output format: {output_format}
- ALWAYS end with "generate_report"
- Each search query must be DIFFERENT and targeted
- dependsOn may only reference earlier steps

# OUTPUT FORMAT
Respond with ONLY valid JSON. No markdown, no explanation, no backticks.

# EXAMPLES

{_PLANNING_EXAMPLES}"""

    user = f"""Research goal: "{goal}"

Generate a workflow with up to {max_steps} steps using sources: {source_list}.
Output format: {output_format}. Depth: {depth} ({max_results} results per search).

Return ONLY the JSON object with title, description, and steps array."""
    return system, user


# ----------------------------------------------------------------------
# Step handlers


def build_extract_prompt(
    extraction_goal: str, fields: Sequence[str], source_data: Any, limit: int
) -> PromptPair:
    system = (
        "You are a data extraction assistant. Extract specific information from "
        f"search results.\n{JSON_ONLY}"
    )
    field_shape = ", ".join(f'"{field}": "value"' for field in fields)
    user = f"""Extract the following from these search results:

EXTRACTION GOAL: {extraction_goal}
FIELDS TO EXTRACT: {json.dumps(list(fields))}

SOURCE DATA:
{truncate_json(source_data, limit)}

Return JSON in this format:
{{
  "extracted": [
    {{ {field_shape} }}
  ],
  "totalExtracted": <number>,
  "summary": "Brief summary of what was extracted"
}}"""
    return system, user


def build_analyze_prompt(
    analysis_type: str, question: Optional[str], data: Any, limit: int
) -> PromptPair:
    system = (
        "You are a research analyst. Analyze the provided data and give insights.\n"
        f"Analysis type: {analysis_type}\n{JSON_ONLY}"
    )
    user = f"""Analyze this data:

QUESTION: {question or "Provide a comprehensive analysis"}
ANALYSIS TYPE: {analysis_type}

DATA:
{truncate_json(data, limit)}

Return JSON in this format:
{{
  "analysisType": "{analysis_type}",
  "findings": [
    {{ "insight": "Key finding", "evidence": "Supporting data", "confidence": "high|medium|low" }}
  ],
  "summary": "Overall analysis summary",
  "recommendations": ["Recommendation 1", "Recommendation 2"]
}}"""
    return system, user


def build_aggregate_prompt(merge_strategy: str, sources: Any, limit: int) -> PromptPair:
    system = (
        "You are a data aggregation assistant. Merge and organize data from "
        f"multiple sources.\n{JSON_ONLY}"
    )
    user = f"""Merge this data using strategy: {merge_strategy}

DATA SOURCES:
{truncate_json(sources, limit)}

Return JSON in this format:
{{
  "mergeStrategy": "{merge_strategy}",
  "totalItems": <number>,
  "aggregatedData": [ ... merged items ... ],
  "summary": "Brief description of merged data"
}}"""
    return system, user


# ----------------------------------------------------------------------
# Report synthesis

FORMAT_INSTRUCTIONS = {
    "comparison": """Create a COMPARISON report with these sections:
1. text: Executive overview comparing the items
2. table: Detailed comparison matrix with features/metrics as columns
3. chart: Bar chart showing key quantitative differences (stars, downloads, etc.)
4. list: Key differences and when to use each option
5. text: Final recommendation with reasoning""",
    "analysis": """Create an ANALYSIS report with these sections:
1. text: Executive overview of the analysis findings
2. text: Detailed analysis of the main trends/patterns found
3. table: Supporting data table with key metrics
4. list: Key insights and takeaways (5-8 items)
5. text: Conclusions, recommendations, and next steps""",
    "timeline": """Create a TIMELINE report with these sections:
1. text: Executive overview of the subject's evolution
2. table: Chronological events table with Date, Event, and Significance columns
3. list: Major milestones and turning points
4. text: Current state and recent developments
5. text: Future predictions and emerging trends""",
    "summary": """Create a SUMMARY report with these sections:
1. text: Executive summary (2-3 sentences capturing the most important finding)
2. text: Detailed overview of main findings
3. table: Key data points organized in a table (if applicable)
4. list: Top highlights and takeaways (5-7 items)
5. text: Conclusion with optional next steps""",
}

_REPORT_EXAMPLE = """{
  "title": "Report Title Here",
  "summary": "Concise 2-3 sentence executive summary based on data.",
  "sections": [
    {"id": "section-1", "type": "text", "title": "Overview", "content": "Analysis overview paragraph with key findings from the data..."},
    {"id": "section-2", "type": "table", "title": "Feature Comparison", "content": {"headers": ["Name", "Stars", "Size", "Key Feature"], "rows": [["React", "220k", "Large", "Virtual DOM"], ["Vue", "210k", "Medium", "Reactivity system"]]}},
    {"id": "section-3", "type": "chart", "title": "Popularity Metrics", "content": {"chartType": "bar", "labels": ["React", "Vue", "Angular"], "datasets": [{"label": "GitHub Stars (k)", "data": [220, 210, 95]}]}},
    {"id": "section-4", "type": "list", "title": "Key Takeaways", "content": {"items": ["React leads in ecosystem size and job market", "Vue offers the smoothest learning curve", "Angular is strongest for enterprise applications"]}}
  ]
}"""


def build_synthesis_prompt(
    goal: str,
    results: Any,
    output_format: str,
    custom_title: Optional[str] = None,
) -> PromptPair:
    """Build the system/user prompts asking the model for a structured report."""
    data = truncate_json(results, REPORT_DATA_LIMIT, marker="\n... [truncated]")
    format_guide = FORMAT_INSTRUCTIONS.get(output_format, FORMAT_INSTRUCTIONS["summary"])

    system = f"""You are a professional research report generator.
Create well-structured, data-driven research reports from collected workflow data.

# SECTION TYPES (use these exact values for "type")

## "text" - Paragraph content
content: string (plain text or markdown-like formatting)
Use for: Executive overviews, analysis paragraphs, conclusions, recommendations

## "table" - Structured data tables
content: {{ "headers": string[], "rows": string[][] }}
Use for: Comparisons, metrics, feature matrices, pricing tables
Rules: All rows must have the same length as headers. Use real data from results.

## "chart" - Visual data charts
content: {{ "chartType": "bar"|"line"|"pie", "labels": string[], "datasets": [{{ "label": string, "data": number[] }}] }}
Use for: Quantitative comparisons, trends over time, distribution breakdowns
Rules: data arrays must match labels length. Use real numbers from results, not fabricated ones.

## "list" - Organized bullet lists
content: {{ "items": string[] }}
Use for: Key takeaways, recommendations, pros/cons, action items

# RULES
1. Every section needs: id (unique, like "section-1"), type, title, content
2. Use REAL data from the collected results - don't invent numbers or names
3. If data is sparse, note limitations honestly in a text section
4. Include 3-6 sections per report (appropriate to format)
5. Keep executive summary to 2-3 sentences
6. Table headers should be concise and clear
7. Chart data must be numeric and from the results
8. Section IDs should be sequential: "section-1", "section-2", etc.
9. Respond with ONLY valid JSON - no markdown fences, no explanation
10. If results contain URLs or source names, reference them naturally in text

# REPORT FORMAT: {output_format}
{format_guide}

# EXAMPLE OUTPUT STRUCTURE
{_REPORT_EXAMPLE}"""

    title_line = (
        f"TITLE: {custom_title}" if custom_title else "Generate an appropriate title from the goal."
    )
    user = f"""Generate a {output_format} report for this research:

RESEARCH GOAL: {goal}
{title_line}

COLLECTED DATA:
{data}

Return ONLY the JSON object with title, summary, and sections array."""
    return system, user
