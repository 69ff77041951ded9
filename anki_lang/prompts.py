ENGLISH_CLOZE_SYSTEM = (
    "You create English cloze deletions for learners who want to improve "
    "their English vocabulary."
)

PROMPT_ENGLISH_CLOZE = """
Return STRICT JSON with the keys `word`, `cloze_sentence`, `translation` and `hint`.

Rules:
- Use Anki cloze syntax {{{{c1::...}}}} exactly once around the target word or phrase.
- If a hint is provided, include it using the built-in format {{{{c1::answer::hint}}}} so Anki can show a hint link.
- Sentence length 8-16 words.
- For the `translation` field, provide a concise English paraphrase or definition that clarifies the meaning of the sentence.
- The optional `hint` should help recall the word and can be null.

Your response must be *only* the JSON object. Do not wrap it in markdown.

**Example Output Format:**
{{
  "word": "meticulous",
  "cloze_sentence": "She kept {{{{c1::meticulous::careful}}}} notes during every experiment.",
  "translation": "She kept very careful and precise notes.",
  "hint": "careful"
}}

Target word: {word}
"""

HINDI_CARD_SYSTEM = (
    "You are creating language learning flashcards. Generate a natural, short "
    "Hindi sentence that uses the target word exactly once and is easy for "
    "learners to understand. Provide a natural-sounding English translation. "
    "Target word: {word}"
)

PROMPT_HINDI_CARD = """
Return STRICT JSON with the keys `word`, `hindi_sentence` and `english_sentence`.

Requirements:
- Sentence length 5-12 words.
- Include the word exactly once, unmodified unless grammatical inflection is required.
- Keep the language learner-friendly.
- Use Devanagari for Hindi.

Your response must be *only* the JSON object. Do not wrap it in markdown.

Target word: {word}
"""
