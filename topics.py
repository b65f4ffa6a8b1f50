"""
Keyword-based topic classification for articles without explicit categories.
"""
from typing import List

from config import GENERAL_TOPIC

# Declaration order is the output order
TOPIC_KEYWORDS = {
    'AI Strategy': ['strategy', 'strategic', 'planning', 'roadmap'],
    'Machine Learning': ['machine learning', 'ml', 'model', 'algorithm'],
    'Data Science': ['data science', 'analytics', 'insights', 'data'],
    'AI Governance': ['governance', 'ethics', 'responsible', 'compliance'],
    'Technology': ['technology', 'tech', 'platform', 'infrastructure'],
    'Business Value': ['roi', 'value', 'business', 'impact', 'benefit'],
    'Innovation': ['innovation', 'innovative', 'breakthrough', 'cutting-edge'],
    'Leadership': ['leadership', 'management', 'executive', 'ceo'],
}


def classify(text: str) -> List[str]:
    """
    Map free text to topic labels by substring keyword matching.

    Never empty: text matching no keyword is labelled 'General'.
    """
    text_lower = (text or '').lower()

    found = [
        topic for topic, keywords in TOPIC_KEYWORDS.items()
        if any(keyword in text_lower for keyword in keywords)
    ]

    return found or [GENERAL_TOPIC]
