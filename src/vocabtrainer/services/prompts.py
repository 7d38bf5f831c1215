"""Prompt templates for the content service."""
import json
from typing import List

LANGUAGE_INSTRUCTIONS = {
    "en": "Write every explanation in English.",
    "zh": (
        "Write the definition, the synonym nuance guide, the mnemonic and any feedback in "
        "Simplified Chinese. Keep the example sentence and the synonyms in English."
    ),
}

WORD_DETAILS_PROMPT = """
For the word "{word}", provide the following information in JSON format:
1. The word itself (key: "word").
2. A concise definition (key: "definition").
3. An example sentence using the word (key: "example_sentence").
4. A list of 2-3 common synonyms if applicable (key: "synonyms", array of strings).
5. A brief explanation of the nuanced similarity and differences between these synonyms, and when to use which (key: "synonymNuances").
6. A short joke or fun fact to help memorizing this word (key: "mnemonic").

{language_instruction}
Ensure the output is a single JSON object. If you cannot find information, provide empty strings for values or empty arrays for lists, rather than omitting keys.
"""

BATCH_WORD_DETAILS_PROMPT = """
For each word in the following list, provide a JSON object containing its definition, example sentence, synonyms, a nuance guide for synonyms, and a mnemonic (joke/fun fact).
The main response should be a single JSON object where each key is one of the input words, and its value is an object with the following keys:
- "definition"
- "example_sentence"
- "synonyms" (array of strings, just the words)
- "synonymNuances" (string, explaining differences/usage)
- "mnemonic" (string, a joke or fun fact to help remember)

{language_instruction}
If you cannot find information for a specific word, provide standard placeholders.

Input words:
{words}
"""

EVALUATION_PROMPT = """
The target word is "{word}".
Its definition is: "{definition}"
An example sentence is: "{example_sentence}"
The user provided the following explanation or example sentence: "{explanation}"

Based on the word's actual definition and example, evaluate the user's input.
Determine if the user's input correctly and adequately demonstrates understanding of the word.

Respond in JSON format with the following keys:
- "is_correct": boolean
- "feedback": string (brief explanation)
- "confidence": number (optional, 0.0-1.0)
- "synonymNuances": string (Explain the nuanced similarity and differences between synonyms, and when to use which. Provide this ALWAYS, but especially if incorrect.)
- "mnemonic": string (A joke or fun fact to help memorizing this word. Provide this ALWAYS.)

{language_instruction}
Focus on the core meaning and appropriate usage.
"""


def language_instruction(language: str) -> str:
    return LANGUAGE_INSTRUCTIONS.get(language, LANGUAGE_INSTRUCTIONS["en"])


def build_word_details_prompt(word: str, language: str) -> str:
    return WORD_DETAILS_PROMPT.format(word=word, language_instruction=language_instruction(language))


def build_batch_word_details_prompt(words: List[str], language: str) -> str:
    return BATCH_WORD_DETAILS_PROMPT.format(
        words=json.dumps(words, ensure_ascii=False),
        language_instruction=language_instruction(language),
    )


def build_evaluation_prompt(
    word: str,
    definition: str,
    example_sentence: str,
    explanation: str,
    language: str,
) -> str:
    return EVALUATION_PROMPT.format(
        word=word,
        definition=definition,
        example_sentence=example_sentence,
        explanation=explanation,
        language_instruction=language_instruction(language),
    )
