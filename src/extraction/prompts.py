# src/extraction/prompts.py

import base64
from dataclasses import dataclass
from typing import List, Optional, Union

TEXT_INSTRUCTIONS = """\
Extract a structured list of items, their costs, tax, and total from this
text parsed from a retail receipt PDF.
If items are discounted, make sure to include only the prices of items post discount.
Each item in the "items" list should have a "name" attribute and a "price" attribute.
The tax and the final price should be separate attributes called "tax" and "total".
Return the data in JSON format with the following structure:
{
  "items": [{"name": "item name", "price": price_as_number}, ...],
  "tax": tax_amount_as_number,
  "total": total_amount_as_number
}
Return pure JSON without code fences or additional text."""

IMAGE_INSTRUCTIONS = """\
Extract a structured list of items, their costs, tax, and total from this receipt image.
Return the data in JSON format with the following structure:
{
  "items": [{"name": "item name", "price": price_as_number}, ...],
  "tax": tax_amount_as_number,
  "total": total_amount_as_number
}
Return pure JSON without code fences or additional text."""

IMAGE_USER_PROMPT = "Extract the receipt information from this image."
IMAGE_MAX_TOKENS = 1000


@dataclass(frozen=True)
class ExtractionRequest:
    system_instruction: str
    user_content: Union[str, List[dict]]
    max_tokens: Optional[int] = None

    def to_messages(self) -> List[dict]:
        return [
            {"role": "system", "content": self.system_instruction},
            {"role": "user", "content": self.user_content},
        ]


def build_text_request(text: str) -> ExtractionRequest:
    return ExtractionRequest(system_instruction=TEXT_INSTRUCTIONS, user_content=text)


def build_image_request(image_bytes: bytes, mime_type: str) -> ExtractionRequest:
    """Inlines the image as a base64 data URI next to a short text prompt."""
    b64_image = base64.b64encode(image_bytes).decode("utf-8")
    return ExtractionRequest(
        system_instruction=IMAGE_INSTRUCTIONS,
        user_content=[
            {"type": "text", "text": IMAGE_USER_PROMPT},
            {
                "type": "image_url",
                "image_url": {"url": f"data:{mime_type};base64,{b64_image}"},
            },
        ],
        max_tokens=IMAGE_MAX_TOKENS,
    )
