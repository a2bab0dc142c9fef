"""Profile parsing agent: turns uploaded resume text into a structured record."""

import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .base import AgentRuntime
from ..collaborators import ResumeStore
from ..data.models import Education, Experience, ParsedResume
from ..events import EventBus, EventType, PlatformEvent
from ..events.payloads import ResumeUploadedPayload, parse_payload


MAX_SKILLS = 20
MAX_EXPERIENCE = 5
MAX_EDUCATION = 3

KNOWN_SKILLS = [
    # programming
    "javascript", "typescript", "python", "java", "c++", "c#", "go", "rust", "swift", "kotlin",
    "php", "ruby", "scala", "r", "matlab", "sql", "html", "css", "sass", "less",
    # frameworks
    "react", "angular", "vue.js", "svelte", "node.js", "express", "fastapi", "django", "flask",
    "spring boot", "laravel", "rails", "asp.net", "xamarin", "flutter", "react native",
    # databases
    "mysql", "postgresql", "mongodb", "redis", "elasticsearch", "cassandra", "dynamodb",
    "sqlite", "oracle", "sql server", "firebase", "supabase",
    # cloud
    "aws", "azure", "google cloud", "gcp", "docker", "kubernetes", "terraform", "ansible",
    "jenkins", "github actions", "gitlab ci", "circleci",
    # tools
    "git", "github", "gitlab", "bitbucket", "jira", "confluence", "slack", "figma", "sketch",
    "photoshop", "illustrator", "postman", "insomnia",
    # methodologies
    "agile", "scrum", "kanban", "devops", "ci/cd", "tdd", "bdd", "microservices", "rest api",
    "graphql", "machine learning", "deep learning", "data science", "blockchain",
]

SPECIAL_CASES = {
    "javascript": "JavaScript",
    "typescript": "TypeScript",
    "node.js": "Node.js",
    "react.js": "React.js",
    "vue.js": "Vue.js",
    "angular.js": "Angular.js",
    "c++": "C++",
    "c#": "C#",
    "asp.net": "ASP.NET",
    "sql server": "SQL Server",
    "mongodb": "MongoDB",
    "postgresql": "PostgreSQL",
    "mysql": "MySQL",
    "aws": "AWS",
    "gcp": "GCP",
    "html": "HTML",
    "css": "CSS",
    "api": "API",
    "rest api": "REST API",
    "graphql": "GraphQL",
    "json": "JSON",
    "xml": "XML",
    "ui/ux": "UI/UX",
}

SKILL_PHRASE_PATTERNS = [
    re.compile(r"(?:proficient|experienced|skilled)\s+in\s+([^.\n]+)", re.IGNORECASE),
    re.compile(r"technologies?:\s*([^.\n]+)", re.IGNORECASE),
    re.compile(r"skills?:\s*([^.\n]+)", re.IGNORECASE),
]

EXPERIENCE_PATTERNS = [
    # "2019 - 2022: engineer, acme"
    re.compile(r"(\d{4})\s*[-–]\s*(\d{4}|present|current)\s*[:\-]?\s*([^,\n]+?)\s*,\s*([^,\n]+)", re.IGNORECASE),
    # "software engineer at acme"
    re.compile(
        r"(software engineer|developer|programmer|analyst|manager|designer|architect|consultant|intern)"
        r"\s+at\s+([^,\n]+)",
        re.IGNORECASE
    ),
]

EDUCATION_PATTERNS = [
    re.compile(
        r"((?:bachelor|master|phd|doctorate|associate|diploma|certificate)[^,\n]*)"
        r"\s*,\s*([^,\n]+?)\s*,?\s*(\d{4})",
        re.IGNORECASE
    ),
    re.compile(r"([^,\n]*(?:university|college|institute|school))\s*,?\s*(\d{4})", re.IGNORECASE),
]

YEAR_RANGE = re.compile(r"(\d{4})\s*[-–]\s*(\d{4}|present|current)", re.IGNORECASE)


def _skill_pattern(skill: str) -> "re.Pattern[str]":
    # Word boundaries only where the skill starts/ends with a word character
    prefix = r"\b" if skill[0].isalnum() else ""
    suffix = r"\b" if skill[-1].isalnum() else ""
    return re.compile(prefix + re.escape(skill) + suffix)


class ResumeParser:
    """Heuristic text-to-record extraction."""

    def __init__(self, known_skills: Optional[List[str]] = None):
        self.known_skills = known_skills or KNOWN_SKILLS
        self._skill_patterns = {}
        for skill in self.known_skills:
            variations = {skill, skill.replace(".", ""), re.sub(r"\s+", "", skill), re.sub(r"\s+", "-", skill)}
            self._skill_patterns[skill] = [_skill_pattern(v) for v in variations if v]

    def parse(self, content: str) -> ParsedResume:
        text = content.lower()
        return ParsedResume(
            skills=self.extract_skills(text),
            experience=self.extract_experience(text),
            education=self.extract_education(text)
        )

    def extract_skills(self, text: str) -> List[str]:
        detected: List[str] = []

        for skill, patterns in self._skill_patterns.items():
            if any(pattern.search(text) for pattern in patterns):
                detected.append(self.capitalize_skill(skill))

        for pattern in SKILL_PHRASE_PATTERNS:
            for match in pattern.finditer(text):
                for item in re.split(r"[,;]|\band\b", match.group(1)):
                    item = item.strip()
                    if len(item) > 2:
                        detected.append(self.capitalize_skill(item))

        unique: List[str] = []
        for skill in detected:
            if skill not in unique:
                unique.append(skill)
        return unique[:MAX_SKILLS]

    def extract_experience(self, text: str) -> List[Experience]:
        experience: List[Experience] = []

        for match in EXPERIENCE_PATTERNS[0].finditer(text):
            experience.append(Experience(
                title=self.clean_text(match.group(3)),
                company=self.clean_text(match.group(4)),
                years=f"{match.group(1)}-{match.group(2)}"
            ))
        for match in EXPERIENCE_PATTERNS[1].finditer(text):
            experience.append(Experience(
                title=self.clean_text(match.group(1)),
                company=self.clean_text(match.group(2)),
                years=self.extract_years(text[match.end():match.end() + 40])
            ))

        return experience[:MAX_EXPERIENCE]

    def extract_education(self, text: str) -> List[Education]:
        education: List[Education] = []

        for match in EDUCATION_PATTERNS[0].finditer(text):
            education.append(Education(
                degree=self.clean_text(match.group(1)),
                institution=self.clean_text(match.group(2)),
                year=int(match.group(3))
            ))
        if not education:
            for match in EDUCATION_PATTERNS[1].finditer(text):
                education.append(Education(
                    degree="",
                    institution=self.clean_text(match.group(1)),
                    year=int(match.group(2))
                ))

        return education[:MAX_EDUCATION]

    @staticmethod
    def capitalize_skill(skill: str) -> str:
        lowered = skill.lower()
        if lowered in SPECIAL_CASES:
            return SPECIAL_CASES[lowered]
        return " ".join(word[:1].upper() + word[1:] for word in lowered.split())

    @staticmethod
    def clean_text(text: str) -> str:
        cleaned = re.sub(r"[^\w\s.\-]", "", text.strip())
        return re.sub(r"\s+", " ", cleaned).strip()

    @staticmethod
    def extract_years(text: str) -> Optional[str]:
        match = YEAR_RANGE.search(text)
        if match:
            return f"{match.group(1)}-{match.group(2)}"
        return None


class ProfileParsingAgent:
    """Extracts structured profile data from uploaded resumes."""

    NAME = "ProfileParsingAgent"

    def __init__(
        self,
        bus: EventBus,
        resumes: ResumeStore,
        parser: Optional[ResumeParser] = None
    ):
        """Initialize profile parsing agent.

        Args:
            bus: Event bus to attach to
            resumes: Store for parsed resumes
            parser: Text extraction strategy
        """
        self.resumes = resumes
        self.parser = parser or ResumeParser()

        self.runtime = AgentRuntime(
            name=self.NAME,
            description="Extracts structured information from raw resume documents",
            bus=bus,
            subscribed_types=[EventType.RESUME_UPLOADED],
            published_types=[EventType.RESUME_PARSED, EventType.RESUME_PARSING_FAILED]
        )
        self.logger = self.runtime.logger

    @property
    def name(self) -> str:
        return self.runtime.name

    @property
    def is_running(self) -> bool:
        return self.runtime.is_running

    async def start(self) -> None:
        if await self.runtime.start(self.handle):
            self.logger.info("Ready to process resume uploads")

    async def stop(self) -> None:
        await self.runtime.stop()

    def get_status(self) -> Dict[str, Any]:
        return self.runtime.get_status()

    async def handle(self, event: PlatformEvent) -> None:
        if event.type == EventType.RESUME_UPLOADED:
            await self._parse_resume(event)
        else:
            self.logger.warning("Unhandled event type", event_type=event.type.value)

    async def _parse_resume(self, event: PlatformEvent) -> None:
        if not self.runtime.validate_payload(event, ["user_id"]):
            self.logger.error("Invalid resume upload payload")
            return
        try:
            upload: ResumeUploadedPayload = parse_payload(event)
        except ValidationError as e:
            self.logger.error("Invalid resume upload payload", error=str(e))
            return

        user_id = upload.user_id
        self.logger.info("Parsing resume", user_id=user_id)

        try:
            parsed = self.parser.parse(upload.original_content or "")
            await self.resumes.store_parsed_resume(user_id, parsed)
        except Exception as e:
            self.logger.error("Failed to parse resume", user_id=user_id, error=str(e))
            await self.runtime.publish(
                EventType.RESUME_PARSING_FAILED,
                {"user_id": user_id, "error": str(e)},
                user_id=user_id,
                correlation_id=event.correlation_id
            )
            return

        await self.runtime.publish(
            EventType.RESUME_PARSED,
            {"user_id": user_id, "parsed_resume": parsed.model_dump(mode="json")},
            user_id=user_id,
            correlation_id=event.correlation_id
        )
        self.logger.info(
            "Resume parsed",
            user_id=user_id,
            skills=len(parsed.skills),
            experience=len(parsed.experience),
            education=len(parsed.education)
        )
