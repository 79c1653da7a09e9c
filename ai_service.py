import time
import random
import logging
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_DELAY_RANGE = (1.0, 3.0)
INSIGHTS_DELAY = 1.5

QUICK_ACTIONS = [
    "Summarize this data",
    "Find correlations",
    "Detect outliers",
    "Show trends",
    "Compare segments",
]

INSIGHT_TYPES = ["Trend", "Anomaly", "Quality", "Pattern", "Statistical"]

ERROR_REPLY = "I'm sorry, I encountered an error while processing your request. Please try again."

# Canned replies keyed by the keywords that trigger them, checked in order.
CANNED_REPLIES: List[Tuple[Tuple[str, ...], str]] = [
    (("trend", "pattern"),
     "Based on your dataset analysis, I can see several interesting trends. The data shows a general upward trajectory over the time period, with some seasonal variations. There appears to be a significant correlation between the main variables, suggesting strong underlying relationships in your data."),
    (("correlation", "relationship"),
     "Looking at the correlations in your dataset, there are several notable relationships. The strongest positive correlation appears between your primary metrics, with a correlation coefficient of approximately 0.78. This suggests these variables move together quite consistently."),
    (("outlier", "anomal"),
     "I've identified several potential outliers in your dataset. There are approximately 5-7 data points that fall outside the normal distribution pattern. These outliers could represent either data entry errors or genuinely exceptional cases worth investigating further."),
    (("summary", "summarize", "overview"),
     "Your dataset contains {rows} records across {columns} variables. The data quality appears to be {data_quality} with {domain} domain characteristics. Key insights include strong central tendencies and some interesting patterns in the distribution."),
    (("predict", "forecast"),
     "Based on the historical patterns in your data, the forecasting models suggest continued growth with some seasonal adjustments. The trend line indicates a compound growth rate that should continue if current conditions persist."),
]
FALLBACK_REPLY = "I've analyzed your question about the dataset. The patterns in your data reveal several interesting insights that could help inform your decision-making. Would you like me to create a specific visualization or dive deeper into any particular aspect of the analysis?"

class AIServiceError(Exception):
    pass

class InsightService:
    """
    Stand-in for a hosted model: waits a random interval, then answers from
    templates. Nothing leaves the process.
    """

    def __init__(self, delay_range: Tuple[float, float] = DEFAULT_DELAY_RANGE, rng: Optional[random.Random] = None, sleep: Callable[[float], None] = time.sleep):
        self.delay_range = delay_range
        self.rng = rng or random.Random()
        self._sleep = sleep

    def _wait(self, base: Optional[float] = None):
        lo, hi = self.delay_range
        delay = base if base is not None else lo + self.rng.random() * max(0.0, hi - lo)
        if delay > 0: self._sleep(delay)

    def generate_response(self, prompt: str, context: Optional[Dict] = None) -> str:
        if not prompt or not prompt.strip(): raise AIServiceError("Empty prompt")
        try:
            self._wait()
        except Exception as e:
            logger.exception("AI response failed")
            raise AIServiceError("Failed to generate AI response") from e
        return self.canned_reply(prompt, context)

    def canned_reply(self, prompt: str, context: Optional[Dict] = None) -> str:
        lower = prompt.lower()
        ctx = context or {}
        for keywords, template in CANNED_REPLIES:
            if any(k in lower for k in keywords):
                return template.format(
                    rows=ctx.get("rows", "multiple"),
                    columns=ctx.get("columns", "several"),
                    data_quality=f"{ctx['data_quality']}%" if "data_quality" in ctx else "good",
                    domain=ctx.get("domain", "mixed"),
                )
        return FALLBACK_REPLY

    def generate_insights(self, context: Dict) -> List[str]:
        try:
            self._wait(INSIGHTS_DELAY if self.delay_range[1] > 0 else 0)
        except Exception as e:
            logger.exception("Insight generation failed")
            raise AIServiceError("Failed to generate insights") from e
        domain = context.get("domain", "general")
        insights = [
            f"Increasing {domain} trends over time",
            "Strong correlation detected between key variables",
            f"Data quality assessment shows {context.get('data_quality', 0)}% completeness",
            f"{len(context.get('detected_features', []))} domain-specific features identified",
            "Statistical significance found in primary metrics",
        ]
        return insights[:3 + self.rng.randrange(3)]

    def insight_confidence(self) -> int:
        return 70 + self.rng.randrange(30)
