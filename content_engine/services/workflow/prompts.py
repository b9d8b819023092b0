"""Agent instructions and article step prompt templates."""

CONTENT_AGENT_INSTRUCTIONS = """
You are an expert content creator specializing in {brand}'s platform. Your primary role is to create
engaging, SEO-optimized content that promotes {brand}'s features and benefits while providing valuable insights to readers.

Content Creation Guidelines:
- Create content that targets both informational and commercial search intent
- Use a mix of short and long paragraphs for better readability
- Include relevant keywords naturally throughout the content
- Structure articles with proper H2, H3 headings (use markdown)
- Add bullet points and numbered lists for better scannability
- Incorporate relevant statistics and real-world examples
- End with a clear call-to-action

SEO Best Practices:
- Write compelling meta descriptions when requested
- Use semantic keywords and LSI terms naturally
- Maintain optimal content length (1000-2000 words for articles)
- Include relevant internal linking suggestions
- Structure content with proper heading hierarchy
- Focus on user intent and engagement

When Creating Content:
- Start with a hook that grabs attention
- Weave in {brand}'s unique selling points naturally
- Back claims with specific features and capabilities
- Address common pain points and their solutions
- Maintain a professional yet conversational tone
- Focus on benefits while subtly highlighting features
- Use the knowledge query tool to access accurate product information

Remember to:
- Cite specific {brand} features and capabilities accurately
- Compare {brand} favorably but fairly to alternatives
- Address potential customer objections preemptively
- Highlight the simplicity and efficiency gains
""".strip()


# -----------------------------------------------------------------------------
# Knowledge queries
# -----------------------------------------------------------------------------

RESEARCH_QUERY = "key features and benefits of {brand} related to {topic}"
SECTION_QUERY = "{brand} features and capabilities related to {section}"
INTRODUCTION_QUERY = "{brand}'s main value proposition and unique benefits for {topic}"

RESEARCH_QUERY_LIMIT = 5
SECTION_QUERY_LIMIT = 2
INTRODUCTION_QUERY_LIMIT = 2

UNAVAILABLE_REFERENCE = "Information not available"
REFERENCE_SOURCE = "{brand} documentation"


# -----------------------------------------------------------------------------
# Step prompts
# -----------------------------------------------------------------------------

OUTLINE_PROMPT = """Create a detailed outline for a 2000-word promotional SEO article about {brand}'s {topic}.
Use this {brand}-specific information: {knowledge}

Include:
1. SEO metadata optimized for {brand} and {topic}
2. Main sections highlighting {brand}'s unique capabilities
3. Key points emphasizing {brand}'s competitive advantages
4. Specific {brand} features to showcase in each section
5. Customer pain points that {brand} solves

Return only a JSON object with this exact structure:
{{
  "seoMetadata": {{
    "title": "string",
    "description": "string",
    "keywords": ["string"]
  }},
  "sections": [
    {{
      "title": "string",
      "wordCount": number,
      "keyPoints": ["string"],
      "productFeatures": ["string"]
    }}
  ]
}}"""

INTRODUCTION_PROMPT = """Write a compelling 250-300 word introduction for a promotional article about {brand}'s {topic}.
Use this {brand}-specific information: {knowledge}
And this outline for context: {outline}

The introduction should:
- Start with a powerful hook about the challenges businesses face
- Introduce {brand} as the solution
- Highlight {brand}'s unique approach to {topic}
- Preview the main benefits and features
- Use these key references: {references}
- End with a clear value proposition"""

MAIN_CONTENT_1_PROMPT = """Write the first part (600-700 words) of the main content for the promotional article about {brand}'s {topic}.
Using this outline: {outline}
And following this introduction: {introduction}
Reference these {brand} features: {references}

Focus on:
- Detailed explanation of {brand}'s approach to {topic}
- Specific features and capabilities that set {brand} apart
- Real-world examples of how {brand} solves common challenges
- Integration capabilities and ease of use

Use proper H2 and H3 headings in markdown format."""

MAIN_CONTENT_2_PROMPT = """Write the second part (600-700 words) of the main content.
Using this outline: {outline}
Following this content: {previous}
Reference these {brand} features: {references}

Focus on:
- Customer success stories and case studies with {brand}
- ROI and business impact
- Competitive advantages over traditional solutions
- Advanced features and customization options

Use proper H2 and H3 headings in markdown format."""

BENEFITS_PROMPT = """Write a detailed benefits and features section (300-400 words) highlighting {brand}'s value proposition.
Using this outline: {outline}
Reference these {brand} features: {references}

Include:
- Key differentiators in {brand}'s approach to {topic}
- Time and cost savings through automation
- Scalability and future-proofing advantages
- Integration capabilities with existing systems

Format as a clear, scannable list of benefits with supporting details."""

CONCLUSION_PROMPT = """Write a powerful conclusion and call-to-action (200-250 words) for the {brand} article.
Using this outline: {outline}

Include:
- Recap of {brand}'s unique approach to {topic}
- Summary of key benefits and competitive advantages
- Clear next steps for interested readers
- Compelling call-to-action to try {brand}
- Link to {brand}'s website ({url})

End with a strong statement about {brand}'s impact on the industry."""


# -----------------------------------------------------------------------------
# Finalize templates
# -----------------------------------------------------------------------------

BENEFITS_HEADING = "## Key Benefits of Using {brand}"
CONCLUSION_HEADING = "## Transform Your Business with {brand}"

CALL_TO_ACTION = (
    "Experience the future of {topic} with {brand}. Start your free trial today and see "
    "how our AI-powered platform can transform your business. Visit {url} to learn more."
)

SOCIAL_SNIPPETS = (
    "🚀 Discover how {brand}'s AI-powered platform revolutionizes {topic}. Learn more in our latest article!",
    "💡 Transform your {topic} with {brand}'s innovative solutions. See the benefits in our detailed guide.",
    "🔥 Want to stay ahead in {topic}? See how {brand}'s AI technology gives you the competitive edge.",
    "⚡️ {brand} makes {topic} 10x faster and more efficient. Find out how in our new article!",
)

# Not computed; kept as an explicitly named placeholder
PLACEHOLDER_SEO_SCORE = 95
