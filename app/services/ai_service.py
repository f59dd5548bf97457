"""
AI service for analysing submitted audit forms.
"""
import logging
import json
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from openai import OpenAI
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AIServiceError, NotFoundError
from app.models.audit import AuditForm
from app.services.activity_service import ActivityAction, TargetType, log_activity
from app.services.form_structure import combine_structure_with_values, decode_json, form_text_content

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("compliance_score", "risk_level", "key_findings", "recommendations")

SYSTEM_PROMPT = (
    "You are an expert compliance auditor. Analyze the provided audit form data and return "
    "your analysis in the requested JSON format only, without any additional text or "
    "markdown formatting."
)

PROMPT_TEMPLATE = """Please analyze this audit form submission and provide insights in the following JSON format:

{{
  "compliance_score": 85,
  "risk_level": "Medium",
  "key_findings": ["Finding 1", "Finding 2"],
  "recommendations": ["Recommendation 1", "Recommendation 2"],
  "areas_of_concern": ["Concern 1", "Concern 2"],
  "positive_aspects": ["Positive aspect 1", "Positive aspect 2"]
}}

Form Name: {form_name}

Form Submission Data:
{text_content}

Please provide a comprehensive analysis focusing on compliance adherence, potential risks, and actionable recommendations for improvement."""


class FormAnalysisService:
    """AI-powered analysis of audit form submissions, cached on the form."""

    def __init__(self, db: Session):
        self.db = db
        self._client = None

    @property
    def client(self):
        """Lazy-load OpenAI client."""
        if self._client is None and settings.is_openai_available():
            try:
                self._client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.OPENAI_TIMEOUT)
            except Exception as e:
                logger.error(f"Failed to initialize OpenAI client: {e}")
                return None
        return self._client

    def is_available(self) -> bool:
        """Check if AI analysis is available."""
        return settings.is_openai_available() and self.client is not None

    def analyze(self, form_id: int, actor_id: Optional[int] = None, refresh: bool = False) -> Dict[str, Any]:
        """
        Analyse one form, reusing a stored analysis unless `refresh` is set.

        Returns:
            {"analysis": dict, "cached": bool}

        Raises:
            NotFoundError: Unknown form
            AIServiceError: OpenAI not configured (unavailable) or the call failed
        """
        form = self.db.get(AuditForm, form_id)
        if form is None:
            raise NotFoundError("Form not found")

        cached = decode_json(form.ai_analysis)
        if cached and not refresh:
            logger.info(f"Returning stored AI analysis for form {form_id}")
            return {"analysis": cached, "cached": True}

        if not self.is_available():
            raise AIServiceError("AI analysis is not configured", unavailable=True)

        structure = form.template.structure if form.template else []
        fields = combine_structure_with_values(structure, form.value or {})
        text_content = form_text_content(fields)

        analysis = self._request_analysis(form.name, text_content)
        analysis["analyzed_at"] = datetime.now(timezone.utc).isoformat()

        try:
            form.ai_analysis = analysis
            log_activity(
                self.db,
                actor_id,
                ActivityAction.AI_ANALYSIS,
                target_type=TargetType.AUDIT_FORM,
                target_id=form_id,
                commit=False,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to store AI analysis for form {form_id}: {e}", exc_info=True)
            raise AIServiceError("Failed to store AI analysis") from e

        logger.info(f"Stored AI analysis for form {form_id}")
        return {"analysis": analysis, "cached": False}

    def _request_analysis(self, form_name: str, text_content: str) -> Dict[str, Any]:
        prompt = PROMPT_TEMPLATE.format(form_name=form_name, text_content=text_content)
        logger.info(f"Requesting AI analysis from model {settings.OPENAI_MODEL}")
        try:
            response = self.client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.3,
                max_tokens=1500,
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content
        except Exception as e:
            logger.error(f"AI analysis request failed: {e}", exc_info=True)
            raise AIServiceError("AI API request failed") from e

        try:
            analysis = json.loads(content or "")
        except json.JSONDecodeError as e:
            logger.warning(f"AI response was not valid JSON: {e}")
            raise AIServiceError("Failed to parse AI response as JSON") from e

        if not isinstance(analysis, dict):
            raise AIServiceError("AI response is not a JSON object")
        for field in REQUIRED_FIELDS:
            if field not in analysis:
                raise AIServiceError(f"Missing required field in AI response: {field}")
        return analysis
