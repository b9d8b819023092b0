"""Article workflow models: outline, step outputs and the finished article."""

from typing import List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialized with camelCase keys, accepts either casing on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SeoMetadata(CamelModel):
    title: str = Field(..., description="SEO title")
    description: str = Field(default="", description="Meta description")
    keywords: List[str] = Field(default_factory=list, description="Target keywords")


class OutlineSection(CamelModel):
    title: str = Field(..., description="Section heading")
    word_count: int = Field(default=0, description="Target length in words")
    key_points: List[str] = Field(default_factory=list)
    product_features: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("productFeatures", "wegicFeatures", "product_features"),
        serialization_alias="productFeatures",
        description="Product features to showcase in the section",
    )


class OutlineData(CamelModel):
    """Outline produced by the research step, read-only for later steps."""

    seo_metadata: SeoMetadata
    sections: List[OutlineSection] = Field(default_factory=list)


class ProductReference(CamelModel):
    """Knowledge retrieved for one outline section."""

    feature: str
    source: str
    content: str


class ResearchResult(CamelModel):
    outline: OutlineData
    references: List[ProductReference] = Field(default_factory=list)


class SectionResult(CamelModel):
    """Output of one generative step."""

    content: str
    word_count: int


class ArticleMetadata(CamelModel):
    title: str
    description: str
    keywords: List[str] = Field(default_factory=list)
    social_snippets: List[str] = Field(default_factory=list)
    # Published under the brand key that article consumers read
    product_features: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("wegicFeatures", "productFeatures", "product_features"),
        serialization_alias="wegicFeatures",
    )
    call_to_action: str


class ArticleResult(CamelModel):
    final_article: str
    total_word_count: int
    seo_score: int = Field(..., description="Placeholder score, not computed")
    metadata: ArticleMetadata
