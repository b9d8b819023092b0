"""
Promotional article workflow.

    research -> introduction -> mainContent1 -> mainContent2 -> benefits
             -> conclusion -> finalize

Every step but `finalize` issues exactly one agent call. `research` also asks
the knowledge base for facts, asks for a JSON outline and then looks up
references for every outline section concurrently. `finalize` is pure
assembly.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from content_engine.schemas.article import (
    ArticleMetadata,
    ArticleResult,
    OutlineData,
    ProductReference,
    ResearchResult,
    SectionResult,
)
from content_engine.services.ai.agent import ContentAgent
from content_engine.services.errors import OutlineParseError, PipelineError
from content_engine.services.rag.retriever import KnowledgeRetriever
from content_engine.services.workflow import prompts
from content_engine.services.workflow.engine import WorkflowDefinition, WorkflowEngine
from content_engine.services.workflow.state import StepContext

logger = logging.getLogger(__name__)

WORKFLOW_NAME = "promotional-article-generator"

RESEARCH = "research"
INTRODUCTION = "introduction"
MAIN_CONTENT_1 = "mainContent1"
MAIN_CONTENT_2 = "mainContent2"
BENEFITS = "benefits"
CONCLUSION = "conclusion"
FINALIZE = "finalize"

CONTENT_STEPS = (INTRODUCTION, MAIN_CONTENT_1, MAIN_CONTENT_2, BENEFITS, CONCLUSION)


@dataclass(frozen=True)
class BrandProfile:
    """Product the articles promote."""

    name: str = "Wegic"
    url: str = "wegic.ai"

    @classmethod
    def from_settings(cls, settings) -> "BrandProfile":
        return cls(name=settings.brand_name, url=settings.brand_url)


def word_count(text: str) -> int:
    """Number of whitespace-separated tokens."""
    return len(re.findall(r"\S+", text or ""))


def _safe_parse_json(text: str) -> Optional[Dict[str, Any]]:
    cleaned = (text or "").strip()
    if not cleaned:
        return None

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Models like to wrap JSON in prose or code fences
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None

    try:
        return json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError:
        return None


def parse_outline(text: str) -> OutlineData:
    """
    Parse the model's outline reply.

    Raises:
        OutlineParseError: Not JSON, or JSON not shaped like an outline
    """
    data = _safe_parse_json(text)
    if not isinstance(data, dict):
        raise OutlineParseError("Failed to generate valid outline structure", raw_text=text)

    try:
        return OutlineData.model_validate(data)
    except ValidationError as e:
        raise OutlineParseError(f"Outline does not match the expected shape: {e}", raw_text=text) from e


def _dump(value: Any) -> str:
    if isinstance(value, list):
        return json.dumps([v.model_dump(by_alias=True) for v in value], ensure_ascii=False)
    return value.model_dump_json(by_alias=True)


class ArticleWorkflow:
    """
    Usage:
        workflow = ArticleWorkflow(agent, retriever, BrandProfile("Wegic", "wegic.ai"))
        run = await workflow.engine().start({"topic": "AI website creation"})
        article: ArticleResult = run.results["finalize"]
    """

    def __init__(
        self,
        agent: ContentAgent,
        retriever: KnowledgeRetriever,
        brand: Optional[BrandProfile] = None,
    ):
        self.agent = agent
        self.retriever = retriever
        self.brand = brand or BrandProfile()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _topic(ctx: StepContext) -> str:
        topic = str(ctx.trigger.get("topic") or "").strip()
        if not topic:
            raise ValueError("Workflow trigger requires a non-empty 'topic'")
        return topic

    async def _generate_section(self, prompt: str) -> SectionResult:
        response = await self.agent.generate(prompt)
        return SectionResult(content=response.text, word_count=word_count(response.text))

    async def _section_reference(self, title: str) -> ProductReference:
        source = prompts.REFERENCE_SOURCE.format(brand=self.brand.name)
        query = prompts.SECTION_QUERY.format(brand=self.brand.name, section=title)
        try:
            content = await self.retriever.retrieve_text(query, prompts.SECTION_QUERY_LIMIT)
        except PipelineError as e:
            logger.error(f"Error querying section {title}: {e}", extra={"error": str(e)})
            content = prompts.UNAVAILABLE_REFERENCE
        return ProductReference(feature=title, source=source, content=content)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def research(self, ctx: StepContext) -> ResearchResult:
        topic = self._topic(ctx)
        brand = self.brand.name

        logger.info(f"Querying {brand} information for topic: {topic}", extra={"step_id": ctx.step_id})
        knowledge = await self.retriever.retrieve_text(
            prompts.RESEARCH_QUERY.format(brand=brand, topic=topic),
            prompts.RESEARCH_QUERY_LIMIT,
        )

        response = await self.agent.generate(
            prompts.OUTLINE_PROMPT.format(brand=brand, topic=topic, knowledge=knowledge)
        )
        outline = parse_outline(response.text)

        references = await asyncio.gather(
            *(self._section_reference(section.title) for section in outline.sections)
        )
        logger.info(
            f"Outline has {len(outline.sections)} sections",
            extra={"step_id": ctx.step_id},
        )
        return ResearchResult(outline=outline, references=list(references))

    async def introduction(self, ctx: StepContext) -> SectionResult:
        topic = self._topic(ctx)
        research: ResearchResult = ctx.get_step_result(RESEARCH)

        knowledge = await self.retriever.retrieve_text(
            prompts.INTRODUCTION_QUERY.format(brand=self.brand.name, topic=topic),
            prompts.INTRODUCTION_QUERY_LIMIT,
        )
        return await self._generate_section(prompts.INTRODUCTION_PROMPT.format(
            brand=self.brand.name,
            topic=topic,
            knowledge=knowledge,
            outline=_dump(research.outline),
            references=_dump(research.references),
        ))

    async def main_content_1(self, ctx: StepContext) -> SectionResult:
        topic = self._topic(ctx)
        research: ResearchResult = ctx.get_step_result(RESEARCH)
        intro: SectionResult = ctx.get_step_result(INTRODUCTION)

        return await self._generate_section(prompts.MAIN_CONTENT_1_PROMPT.format(
            brand=self.brand.name,
            topic=topic,
            outline=_dump(research.outline),
            introduction=intro.content,
            references=_dump(research.references[:2]),
        ))

    async def main_content_2(self, ctx: StepContext) -> SectionResult:
        research: ResearchResult = ctx.get_step_result(RESEARCH)
        previous: SectionResult = ctx.get_step_result(MAIN_CONTENT_1)

        return await self._generate_section(prompts.MAIN_CONTENT_2_PROMPT.format(
            brand=self.brand.name,
            outline=_dump(research.outline),
            previous=previous.content,
            references=_dump(research.references[2:]),
        ))

    async def benefits(self, ctx: StepContext) -> SectionResult:
        topic = self._topic(ctx)
        research: ResearchResult = ctx.get_step_result(RESEARCH)

        return await self._generate_section(prompts.BENEFITS_PROMPT.format(
            brand=self.brand.name,
            topic=topic,
            outline=_dump(research.outline),
            references=_dump(research.references),
        ))

    async def conclusion(self, ctx: StepContext) -> SectionResult:
        topic = self._topic(ctx)
        research: ResearchResult = ctx.get_step_result(RESEARCH)

        return await self._generate_section(prompts.CONCLUSION_PROMPT.format(
            brand=self.brand.name,
            topic=topic,
            url=self.brand.url,
            outline=_dump(research.outline),
        ))

    async def finalize(self, ctx: StepContext) -> ArticleResult:
        research: ResearchResult = ctx.get_step_result(RESEARCH)
        sections = {step_id: ctx.get_step_result(step_id) for step_id in CONTENT_STEPS}
        return assemble_article(self._topic(ctx), research, sections, self.brand)

    # -------------------------------------------------------------------------
    # Wiring
    # -------------------------------------------------------------------------

    def definition(self) -> WorkflowDefinition:
        return WorkflowDefinition.chain(WORKFLOW_NAME, [
            (RESEARCH, self.research),
            (INTRODUCTION, self.introduction),
            (MAIN_CONTENT_1, self.main_content_1),
            (MAIN_CONTENT_2, self.main_content_2),
            (BENEFITS, self.benefits),
            (CONCLUSION, self.conclusion),
            (FINALIZE, self.finalize),
        ])

    def engine(self) -> WorkflowEngine:
        return WorkflowEngine(self.definition())


def assemble_article(
    topic: str,
    research: ResearchResult,
    sections: Dict[str, SectionResult],
    brand: BrandProfile,
) -> ArticleResult:
    """Combine the generated sections into the final article. No model calls."""
    seo = research.outline.seo_metadata
    call_to_action = prompts.CALL_TO_ACTION.format(topic=topic, brand=brand.name, url=brand.url)

    parts: List[str] = [
        f"# {seo.title}",
        "",
        sections[INTRODUCTION].content,
        "",
        sections[MAIN_CONTENT_1].content,
        "",
        sections[MAIN_CONTENT_2].content,
        "",
        prompts.BENEFITS_HEADING.format(brand=brand.name),
        sections[BENEFITS].content,
        "",
        prompts.CONCLUSION_HEADING.format(brand=brand.name),
        sections[CONCLUSION].content,
        "",
        "---",
        call_to_action,
    ]

    return ArticleResult(
        final_article="\n\n".join(parts),
        total_word_count=sum(sections[step_id].word_count for step_id in CONTENT_STEPS),
        seo_score=prompts.PLACEHOLDER_SEO_SCORE,
        metadata=ArticleMetadata(
            title=seo.title,
            description=seo.description,
            keywords=list(seo.keywords),
            social_snippets=[s.format(topic=topic, brand=brand.name) for s in prompts.SOCIAL_SNIPPETS],
            product_features=[ref.feature for ref in research.references],
            call_to_action=call_to_action,
        ),
    )


def build_article_workflow(agent: ContentAgent, retriever: KnowledgeRetriever, settings) -> ArticleWorkflow:
    return ArticleWorkflow(agent, retriever, BrandProfile.from_settings(settings))


def build_content_agent(chat_client, retriever: KnowledgeRetriever, settings) -> ContentAgent:
    """Content agent with the brand instructions and the knowledge query tool."""
    return ContentAgent(
        chat_client,
        instructions=prompts.CONTENT_AGENT_INSTRUCTIONS.format(brand=settings.brand_name),
        tools=[retriever.as_agent_tool()],
        max_tool_rounds=settings.agent_max_tool_rounds,
        name=f"{settings.brand_name} Content Creator",
    )
