import logging
import re
from typing import Any, Dict, List

from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_ollama import ChatOllama
from pydantic import BaseModel, Field, ValidationError

from microlearn.config import settings
from microlearn.errors import ContentGenerationError
from microlearn.schemas import ChunkCreate, ChunkDifficulty

logger = logging.getLogger(__name__)

COMMON_TAGS = [
    "javascript", "python", "react", "node", "api", "database",
    "function", "variable", "loop", "array", "object",
]


def get_content_generator():
    """Factory function to return the appropriate generator based on config"""
    if settings.ai_provider.lower() == "claude":
        return ClaudeContentGenerator()
    else:
        return OllamaContentGenerator()


class DraftChunk(BaseModel):
    """Schema for a single generated chunk"""
    title: str = Field(description="Short, engaging title")
    concept: str = Field(description="The ONE concept this chunk teaches")
    difficulty: ChunkDifficulty = Field(description="beginner, intermediate or advanced")
    estimated_minutes: int = Field(default=10, description="Minutes to complete, 5-15")
    prerequisites: List[str] = Field(default_factory=list, description="Titles of earlier chunks this one builds on")
    explanation: str = Field(description="Explanation of the concept")
    key_points: List[str] = Field(default_factory=list, description="Key takeaways")
    examples: List[Dict[str, Any]] = Field(default_factory=list, description="Worked examples")
    exercises: List[Dict[str, Any]] = Field(default_factory=list, description="Practice exercises")


class ChunkBatchOutput(BaseModel):
    """Schema for the generator's complete response"""
    chunks: List[DraftChunk] = Field(description="Chunks in learning order")


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-") or "topic"


def extract_tags(text: str) -> List[str]:
    """Tag a chunk with the common programming terms its explanation mentions"""
    lowered = text.lower()
    return [tag for tag in COMMON_TAGS if tag in lowered]


class BaseContentGenerator:
    """Base class for LLM-backed chunk generation"""

    def __init__(self):
        self.llm = None
        self.parser = JsonOutputParser(pydantic_object=ChunkBatchOutput)

    def generate_chunks(
        self,
        topic: str,
        complexity: ChunkDifficulty = ChunkDifficulty.INTERMEDIATE,
        target_count: int = None
    ) -> List[ChunkCreate]:
        """
        Break a topic into microlearning chunk drafts.

        Args:
            topic: Topic to cover
            complexity: Learner level the chunks are written for
            target_count: Number of chunks to ask for

        Returns:
            ChunkCreate drafts in generation order, ids "<topic-slug>-<n>"

        Raises:
            ContentGenerationError: if the model call fails or returns no chunks
        """
        target_count = target_count or settings.default_chunk_count
        complexity = ChunkDifficulty(complexity)

        prompt = ChatPromptTemplate.from_messages([
            ("system", self._build_system_prompt()),
            ("human", self._build_prompt() + "\n\n{format_instructions}")
        ])

        chain = prompt | self.llm | self.parser

        try:
            result = chain.invoke({
                "topic": topic,
                "complexity": complexity.value,
                "target_count": target_count,
                "format_instructions": self.parser.get_format_instructions()
            })
        except Exception as e:
            raise ContentGenerationError(f"Chunk generation failed for {topic!r}: {e}") from e

        chunks = self._to_chunks(topic, result)
        if not chunks:
            raise ContentGenerationError(f"Generator returned no chunks for {topic!r}")

        logger.info(f"Generated {len(chunks)} chunks for {topic!r} via {self.__class__.__name__}")
        return chunks

    def _build_system_prompt(self) -> str:
        """Build system prompt for LLM"""
        return (
            "You are an expert instructional designer who creates engaging, effective "
            "microlearning content. Focus on practical, hands-on learning with clear progression."
        )

    def _build_prompt(self) -> str:
        return """Break down the topic "{topic}" into {target_count} digestible microlearning chunks for {complexity} level learners.

Each chunk should:
1. Focus on ONE specific concept
2. Be completable in 5-15 minutes
3. Include practical examples
4. List the titles of earlier chunks it builds on as prerequisites
5. Include practice exercises

Create a logical learning progression where each chunk builds on previous ones.
Only reference prerequisites that appear earlier in your own list."""

    def _to_chunks(self, topic: str, result: Any) -> List[ChunkCreate]:
        """Convert parsed model output to drafts, dropping dangling prerequisites"""
        if isinstance(result, dict):
            items = result.get("chunks", [])
        elif isinstance(result, list):
            items = result
        else:
            raise ContentGenerationError(f"Unexpected generator output type: {type(result).__name__}")

        slug = slugify(topic)
        title_to_id: Dict[str, str] = {}
        chunks: List[ChunkCreate] = []

        for index, raw in enumerate(items):
            try:
                draft = DraftChunk.model_validate(raw)
            except ValidationError as e:
                raise ContentGenerationError(f"Generated chunk {index} is malformed: {e.errors()[0]['msg']}") from e
            chunk_id = f"{slug}-{index}"

            prerequisites = []
            for title in draft.prerequisites:
                prereq_id = title_to_id.get(title.strip().lower())
                if prereq_id:
                    prerequisites.append(prereq_id)
                else:
                    logger.warning(f"Dropping unknown prerequisite {title!r} of chunk {chunk_id}")

            chunks.append(ChunkCreate(
                id=chunk_id,
                title=draft.title,
                concept=draft.concept,
                difficulty=draft.difficulty,
                estimated_minutes=max(1, draft.estimated_minutes),
                prerequisites=prerequisites,
                content={
                    "explanation": draft.explanation,
                    "key_points": draft.key_points,
                    "examples": draft.examples,
                    "exercises": draft.exercises,
                },
                topic=topic,
                subtopic=draft.concept,
                tags=extract_tags(draft.explanation),
            ))
            title_to_id[draft.title.strip().lower()] = chunk_id

        return chunks


class OllamaContentGenerator(BaseContentGenerator):
    """Generator using local Ollama for development"""

    def __init__(self):
        super().__init__()
        self.llm = ChatOllama(
            model=settings.ollama_model,
            base_url=settings.ollama_base_url,
            temperature=0.7,
            format="json"
        )


class ClaudeContentGenerator(BaseContentGenerator):
    """Generator using Claude API for production"""

    def __init__(self):
        from langchain_anthropic import ChatAnthropic

        super().__init__()
        if not settings.claude_api_key:
            raise ContentGenerationError("MICROLEARN_CLAUDE_API_KEY not set in environment variables")

        self.llm = ChatAnthropic(
            model=settings.claude_model,
            api_key=settings.claude_api_key,
            temperature=0.7
        )
