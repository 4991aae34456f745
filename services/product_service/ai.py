from functools import lru_cache

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from shared.config.settings import OPENAI_CHAT_MODEL

MAX_DESCRIPTION_LENGTH = 250

description_prompt = ChatPromptTemplate.from_template(
    """
Write a concise and professional product description for an e-commerce listing.

Product Name: {name}
Category: {category}

Keep it simple, engaging, and highlight its primary features or benefits.
Avoid technical jargon and keep it customer-friendly.
Limit the description to 250 characters maximum.
"""
)


@lru_cache
def get_chat_model() -> BaseChatModel:
    return ChatOpenAI(model=OPENAI_CHAT_MODEL, temperature=0.7)


async def generate_description(llm: BaseChatModel, name: str, category: str) -> str:
    chain = description_prompt | llm | StrOutputParser()
    text = await chain.ainvoke({"name": name, "category": category})
    # The model does not always respect the length limit
    return text.strip()[:MAX_DESCRIPTION_LENGTH]
