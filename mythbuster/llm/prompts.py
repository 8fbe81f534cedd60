from __future__ import annotations

JSON_ONLY = "Ensure the output is ONLY the JSON object."

VERIFY_MYTH_SYSTEM_PROMPT = (
    "You are a myth-busting expert who analyzes statements to determine their accuracy using "
    "evidence-based research. Decide whether the statement is true, false or inconclusive based on "
    "current scientific evidence and credible sources, explain the verdict with specific facts, cite "
    "multiple authoritative sources, and where applicable describe where the myth originated, a related "
    "misconception, and why people believe it.\n"
    "Return a JSON object:\n"
    '{"verdict": "true" | "false" | "inconclusive", "explanation": "...", '
    '"citations": [{"title": "...", "url": "..."}], "mythOrigin": "...", "relatedMyth": "...", '
    '"whyBelieved": "..."}\n' + JSON_ONLY
)

RESEARCH_LENS_SYSTEM_PROMPT = (
    "You are an expert researcher analyzing myths and claims from specific perspectives. Provide key "
    "insights from this perspective, supporting evidence with proper citations, any contradictory "
    "evidence, and nuanced conclusions.\n"
    'Format your response as JSON: {"explanation": "...", "keyInsights": ["..."], '
    '"citations": [{"title": "...", "url": "..."}]}\n' + JSON_ONLY
)

ANALYZE_SOURCE_SYSTEM_PROMPT = (
    "You are an expert source analyst evaluating information quality and reliability.\n"
    'Provide a detailed analysis formatted as JSON: {"analysis": "...", "reliability": "...", '
    '"methodology": "...", "corroborating": ["..."], "contradicting": ["..."]}\n' + JSON_ONLY
)

SYNTHESIZE_INSIGHTS_SYSTEM_PROMPT = (
    "You are an expert research synthesizer who integrates findings from multiple perspectives to "
    "generate comprehensive insights. Focus on identifying patterns, themes, and connections across "
    "different analytical approaches.\n"
    'Format as JSON: {"overallInsight": "...", "themes": [{"title": "...", "description": "..."}], '
    '"connections": ["..."], "contradictions": ["..."]}\n' + JSON_ONLY
)

GAME_SYSTEM_PROMPT = (
    "You are an AI that generates engaging and verifiable statements for a myth-busting game using "
    "evidence-based research. Each statement must be definitively true or false, calibrated to the "
    "requested difficulty and category, supported by authoritative sources, and over time the mix of "
    "true and false statements should be balanced.\n"
    'Return a JSON object: {"statement": "...", "isTrue": boolean, "explanation": "...", '
    '"citations": [{"title": "...", "url": "..."}]}\n' + JSON_ONLY
)

TRACK_MYTH_SYSTEM_TEMPLATE = (
    "You are an AI that generates engaging and verifiable myths for a specific learning track in a "
    "myth-busting game, using evidence-based research and authoritative sources.\n\n"
    "Track Context:\n"
    '- Title: "{title}"\n'
    '- Category: "{category}"\n'
    '- Difficulty: "{difficulty}"\n'
    "- Current Myth Number: {number} of {total}\n\n"
    "The statement must be distinct, not easily predictable, definitively true or false, and aligned "
    "with the track's theme and difficulty. Explain it with specific evidence and give 1-3 "
    "authoritative citations.\n"
    'Return a JSON object: {{"statement": "...", "isTrue": boolean, "explanation": "...", '
    '"citations": [{{"title": "...", "url": "..."}}]}}\n' + JSON_ONLY
)

TRACK_CONCEPT_SYSTEM_TEMPLATE = (
    "You are an AI that designs engaging and educational learning tracks for a myth-busting game using "
    "evidence-based research. Generate {count} diverse learning track concepts. For each provide "
    '"id" (kebab-case slug), "title", "description" (1-2 sentences), "category" (one of Science, '
    'History, Health, Technology, Nature, Psychology, Space, Culture), "difficulty" (easy, medium or '
    'hard), "icon" (one of BookOpen, Brain, FlaskConical, Globe, Laptop, Palette, Scale, ScrollText, '
    'Video, Heart, Atom, Telescope) and "totalMyths" (3-5).\n'
    "Return your response as a JSON array with exactly {count} learning track concepts."
)

TRACK_CONCEPT_USER_PROMPT = (
    "Generate diverse, engaging learning track concepts that challenge common misconceptions and "
    "promote evidence-based learning. Focus on topics with rich potential for verifiable myths and facts."
)

MINI_MYTHS_SYSTEM_TEMPLATE = (
    "You are a highly accurate, evidence-based myth-busting AI. Generate a batch of exactly {count} "
    "distinct, common myth statements covering a variety of topics, each with a boolean verdict and a "
    "brief (1-3 sentences) factual explanation.\n"
    'Return ONLY a JSON array of exactly {count} objects: [{{"statement": "...", "verdict": boolean, '
    '"explanation": "..."}}]'
)

MINI_MYTHS_USER_TEMPLATE = "Please generate {count} random myths with their verifications as per the system prompt instructions."

LENS_PROMPTS = {
    "historical": (
        'Examine the myth "{myth}" from a historical perspective. Analyze its origins, how it developed '
        "over time, and the historical context that may have influenced its creation or spread."
    ),
    "scientific": (
        'Analyze the myth "{myth}" from a scientific standpoint. Examine the evidence, methodologies, '
        "and scientific consensus related to this claim."
    ),
    "cultural": (
        'Explore the myth "{myth}" from a cultural and social perspective. How does this belief vary '
        "across different cultures and societies?"
    ),
    "psychological": (
        'Investigate the myth "{myth}" from a psychological perspective. What cognitive biases, mental '
        "processes, or psychological factors contribute to belief in this myth?"
    ),
    "economic": (
        'Examine the myth "{myth}" from an economic perspective. Are there financial interests, market '
        "forces, or economic factors that influence this belief?"
    ),
    "political": (
        'Analyze the myth "{myth}" from a political perspective. How might political ideologies, power '
        "structures, or governance relate to this belief?"
    ),
}

ANALYSIS_PROMPTS = {
    "reliability": (
        'Evaluate the reliability and credibility of the source at {url} in relation to the myth "{myth}". '
        "Consider the author's expertise, publication venue, peer review status, and potential biases."
    ),
    "methodology": (
        'Examine the methodology used in the source at {url} related to the myth "{myth}". Analyze the '
        "research methods, sample sizes, experimental design, and whether conclusions are supported by the data."
    ),
    "contradictions": (
        'Find evidence that contradicts or challenges the claims made in the source at {url} about the myth "{myth}". '
        "Look for conflicting studies, opposing viewpoints, or limitations in the source's claims."
    ),
    "corroboration": (
        'Find additional sources and evidence that support or corroborate the claims made in the source at {url} '
        'about the myth "{myth}". Look for independent verification and consensus.'
    ),
}


def lens_prompt(myth: str, lens_type: str, custom_query: str = "") -> str:
    if lens_type == "custom" and custom_query:
        return (
            f'Analyze the myth "{myth}" from this specific perspective: {custom_query}. '
            "Provide detailed analysis and cite relevant sources."
        )
    template = LENS_PROMPTS.get(lens_type, LENS_PROMPTS["scientific"])
    return template.format(myth=myth)


def source_prompt(url: str, myth: str, analysis_type: str, custom_query: str = "", source_name: str = "") -> str:
    if analysis_type == "custom" and custom_query:
        prompt = f'Analyze the source at {url} in the context of the myth "{myth}". {custom_query}'
    else:
        template = ANALYSIS_PROMPTS.get(analysis_type, ANALYSIS_PROMPTS["reliability"])
        prompt = template.format(url=url, myth=myth)
    if source_name:
        prompt += f" The source is known as {source_name}."
    return prompt


def synthesis_prompt(myth: str, lenses: list[dict]) -> str:
    blocks = []
    for lens in lenses:
        blocks.append(
            f"**{lens['perspective']} Perspective:**\n"
            f"Key Insights: {', '.join(lens['insights'])}\n"
            f"Analysis: {lens['explanation']}\n"
        )
    return (
        f'Given the myth "{myth}", analyze the following research findings from different perspectives:\n\n'
        + "\n".join(blocks)
        + "\nProvide a comprehensive synthesis that identifies:\n"
        "1. Overarching themes that emerge across perspectives\n"
        "2. Key connections between different viewpoints\n"
        "3. Notable contradictions or tensions\n"
        "4. An overall insight that integrates all perspectives"
    )


def game_prompt(difficulty: str, category: str) -> str:
    return f"Generate a {difficulty} difficulty statement in the {category} category."


def track_myth_system_prompt(title: str, category: str, difficulty: str, number: int, total: int) -> str:
    return TRACK_MYTH_SYSTEM_TEMPLATE.format(
        title=title, category=category, difficulty=difficulty, number=number, total=total
    )


def track_myth_prompt(title: str, number: int) -> str:
    return (
        f'Generate myth number {number} for the track "{title}". Focus on creating a statement that is not '
        "obvious and requires some thought or specific knowledge related to the track's theme, difficulty, "
        "and category."
    )
