import json
import logging
import re
from typing import Optional
from dotenv import load_dotenv
import google.generativeai as genai
from pydantic import ValidationError
from resumate.models.resume import Feedback, JobContext
from resumate.services.config import settings
from resumate.services.prompts import OPTIMIZE_PROMPT, RESUME_PROMPT, json_structure

load_dotenv()
logger = logging.getLogger("uvicorn.error")

CODE_FENCE_RE = re.compile(r"```[a-zA-Z]*\n?")
REWRITE_PREAMBLES = (
    re.compile(r"^Here is the optimized resume:?\n+", re.IGNORECASE),
    re.compile(r"^Optimized Resume:?\n+", re.IGNORECASE),
    re.compile(r"^Based on.*?:\n+", re.IGNORECASE),
)


class OracleResponseError(ValueError):
    """The model answered, but not with something we can use."""


class ResumeReviewGenerator:

    @classmethod
    def _get_llm(cls):
        if not settings.GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY not set in environment variables.")
        genai.configure(api_key=settings.GEMINI_API_KEY)
        return genai

    @classmethod
    def generate_prompt(cls, job: JobContext) -> str:
        return RESUME_PROMPT.replace("${jobTitle}", job.job_title)\
                            .replace("${jobDescription}", job.job_description)\
                            .replace("${AIResponseFormat}", json_structure)

    @classmethod
    def generate_rewrite_prompt(cls, job: JobContext, current_feedback: Optional[Feedback] = None) -> str:
        previous = ""
        if current_feedback is not None:
            previous = f"Previous ATS analysis:\n{current_feedback.model_dump_json()}"
        return OPTIMIZE_PROMPT.replace("${jobTitle}", job.job_title)\
                              .replace("${companyName}", job.company_name)\
                              .replace("${jobDescription}", job.job_description)\
                              .replace("${currentFeedback}", previous)

    @classmethod
    def call_gemini(
        cls,
        prompt: str,
        resume_text: str,
        image: Optional[bytes] = None,
        temperature: float = 0.7,
        max_output_tokens: int = 8192,
    ) -> str:
        client = cls._get_llm()
        model = client.GenerativeModel(settings.GEMINI_MODEL)
        contents = [f"{prompt}\n\nResume:\n{resume_text}"]
        if image:
            contents.append({"mime_type": "image/png", "data": image})

        try:
            response = model.generate_content(
                contents,
                generation_config={"temperature": temperature, "max_output_tokens": max_output_tokens},
                request_options={"timeout": settings.GEMINI_TIMEOUT},
            )
            return response.text
        except Exception as e:
            logger.exception("Error calling Gemini model")
            raise RuntimeError(f"LLM generation failed: {e}")

    @classmethod
    def parse_llm_response(cls, llm_response: str) -> dict:
        stripped = CODE_FENCE_RE.sub("", llm_response)
        cleaned_response = re.search(r"\{.*\}", stripped, re.DOTALL)
        if cleaned_response:
            json_string = cleaned_response.group(0)
        else:
            json_string = stripped.strip()

        try:
            data = json.loads(json_string)
        except json.JSONDecodeError:
            logger.error("LLM response is not valid JSON. Raw start: %s", llm_response[:100].replace('\n', ' '))
            logger.error("Attempted parse: %s", json_string[:200].replace('\n', ' '))
            raise OracleResponseError("LLM response is not valid JSON")
        if not isinstance(data, dict):
            raise OracleResponseError("LLM response is not a JSON object")
        return data

    @classmethod
    def score_resume(cls, resume_text: str, job: JobContext, image: Optional[bytes] = None) -> Feedback:
        prompt = cls.generate_prompt(job)
        llm_response = cls.call_gemini(prompt, resume_text, image=image, temperature=0.3, max_output_tokens=4096)
        logger.info("Received LLM response (first 200 chars): %s", llm_response[:200].replace('\n', ' '))

        data = cls.parse_llm_response(llm_response)
        try:
            return Feedback.model_validate(data)
        except ValidationError as e:
            logger.error("LLM feedback does not match the schema: %s", e)
            raise OracleResponseError(f"LLM feedback does not match the schema: {e}")

    @classmethod
    def clean_rewrite_output(cls, text: str) -> str:
        cleaned = CODE_FENCE_RE.sub("", text.strip()).strip()
        for pattern in REWRITE_PREAMBLES:
            match = pattern.match(cleaned)
            if match and match.end() <= 200:
                cleaned = cleaned[match.end():]
                break
        return cleaned.strip()

    @classmethod
    def rewrite_resume(
        cls,
        resume_text: str,
        job: JobContext,
        current_feedback: Optional[Feedback] = None,
        image: Optional[bytes] = None,
    ) -> str:
        prompt = cls.generate_rewrite_prompt(job, current_feedback)
        llm_response = cls.call_gemini(prompt, resume_text, image=image, temperature=0.5)
        optimized = cls.clean_rewrite_output(llm_response)
        if not optimized:
            raise OracleResponseError("LLM returned an empty rewrite")
        logger.info("Optimization complete, result length: %d", len(optimized))
        return optimized
