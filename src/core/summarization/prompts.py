#!/usr/bin/env python3
"""
Prompt templates for thread summarization.

All prompts that go to the completion service live here so the
generators only deal with sampling, parsing and persistence.
"""

from typing import List

from core.models.summary import ArticleAnalysis

CLASSIFICATION_TEMPERATURE = 0.2
EXTRACTION_TEMPERATURE = 0.3
OVERVIEW_TEMPERATURE = 0.7
THEME_COUNT = 5


class ClassificationPrompts:
    """Counting flagged comments in a sub-batch."""

    SYSTEM_PROMPT = (
        "You are an objective content analyzer focused on identifying antisemitic content. "
        "Use established academic definitions and criteria. "
        "Analyze factually without personal bias. "
        "You must analyze EVERY comment provided. "
        "Respond only with numbers in this format: "
        "[count of antisemitic comments]/[total comments analyzed]"
    )

    @staticmethod
    def user_prompt(comments: List[str]) -> str:
        count = len(comments)
        body = "\n\n".join(comments)
        return (
            f"Analyze these {count} comments for antisemitic content. "
            f"Count how many contain such content.\n"
            f"You MUST analyze all {count} comments.\n"
            f"Respond only with the count in format: X/Y where X is antisemitic "
            f"comments and Y is total analyzed.\n\n"
            f"Comments to analyze:\n\n{body}"
        )


class ArticlePrompts:
    """Headline and article for a single thread."""

    SYSTEM_PROMPT = (
        "You are an objective academic researcher documenting online discourse for a "
        "monitoring project. Record the views and language exactly as they appear, "
        "without softening or editorializing. "
        "Write complete, coherent articles between 175 and 200 words. "
        "Headlines are clear and concise, ideally 3-6 words."
    )

    USER_TEMPLATE = """Document the following content:
1. A clear, concise headline (3-6 words) about the actual topic and sentiment
2. An article of 175-200 words in the same tone as the content
3. Quote terminology verbatim where it matters for accuracy
4. Do not use asterisks or other markup
5. Do not describe the source as a thread, discussion, debate or rhetoric
6. Keep academic objectivity while reporting the views expressed

Format:
HEADLINE: [your headline]
ARTICLE: [your article]

Content:
{content}"""

    @classmethod
    def user_prompt(cls, comments: List[str]) -> str:
        return cls.USER_TEMPLATE.format(content="\n\n".join(comments))


class MatrixPrompts:
    """Flagged-content theme extraction across all articles."""

    SYSTEM_PROMPT = f"""You are an academic researcher analyzing antisemitic content patterns.
Your task is to identify exactly {THEME_COUNT} dominant themes in the provided content.
For each theme:
1. Provide a clear, specific name
2. List 3-5 relevant keywords
3. Note frequency (percentage of content this theme appears in)
Do not include any commentary or recommendations.
Format your response as JSON matching this structure:
{{
  "themes": [
    {{"name": "theme name", "frequency": number, "keywords": ["word1", "word2", "word3"]}}
  ]
}}"""

    @staticmethod
    def user_prompt(articles: List[ArticleAnalysis]) -> str:
        blocks = []
        for article in articles:
            blocks.append(
                f"Thread {article.thread_id}:\n"
                f"Headline: {article.headline}\n"
                f"Article: {article.article}\n"
                f"Antisemitic content: {article.flagged_comments} out of "
                f"{article.analyzed_comments} posts ({article.percentage:.2f}%)"
            )
        return (
            f"Analyze these summaries and identify exactly {THEME_COUNT} dominant "
            f"antisemitic themes:\n\n" + "\n\n".join(blocks)
        )


class OverviewPrompts:
    """Cross-thread overview, general themes and sentiments."""

    OVERVIEW_SYSTEM_PROMPT = (
        "You are an objective academic researcher documenting current events through "
        "the lens of online discourse. Analyze the thread-starting posts and write one "
        "cohesive article of 175-200 words covering the key topics, patterns and "
        "viewpoints. Treat any significant event being discussed as the main topic. "
        "Do not mention that the material comes from online posts."
    )

    THEMES_SYSTEM_PROMPT = f"""You are an academic researcher analyzing content patterns.
Your task is to identify exactly {THEME_COUNT} dominant themes (excluding antisemitism).
For each theme:
1. Provide a clear, specific name
2. List 3-5 relevant keywords
3. Note frequency (percentage of content this theme appears in)
Format your response as JSON matching this structure:
{{
  "themes": [
    {{"name": "theme name", "frequency": number, "keywords": ["word1", "word2", "word3"]}}
  ]
}}"""

    SENTIMENTS_SYSTEM_PROMPT = f"""You are an academic researcher analyzing sentiment patterns.
Your task is to identify exactly {THEME_COUNT} significant sentiments (excluding antisemitism).
For each sentiment:
1. Provide a clear, specific name
2. List 3-5 relevant keywords
3. Note intensity on a scale of 0-100
Format your response as JSON matching this structure:
{{
  "sentiments": [
    {{"name": "sentiment name", "intensity": number, "keywords": ["word1", "word2", "word3"]}}
  ]
}}"""

    @staticmethod
    def overview_prompt(root_texts: List[str]) -> str:
        return (
            "Generate a 175-200 word overview article that captures the key topics and "
            "viewpoints expressed in these posts:\n\n" + "\n\n".join(root_texts)
        )

    @staticmethod
    def _articles_block(articles: List[ArticleAnalysis]) -> str:
        return "\n\n".join(f"{a.headline}\n{a.article}" for a in articles)

    @classmethod
    def themes_prompt(cls, articles: List[ArticleAnalysis]) -> str:
        return (
            f"Analyze these articles and identify exactly {THEME_COUNT} dominant themes "
            f"(excluding antisemitism):\n\n{cls._articles_block(articles)}"
        )

    @classmethod
    def sentiments_prompt(cls, articles: List[ArticleAnalysis]) -> str:
        return (
            f"Analyze these articles and identify exactly {THEME_COUNT} significant "
            f"sentiments (excluding antisemitism):\n\n{cls._articles_block(articles)}"
        )
