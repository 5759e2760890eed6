"""
Running cost estimate for the remote API usage.
"""

import logging
import os

WHISPER_PRICE_PER_MINUTE = 0.006

# USD per million (input, output) tokens
MODEL_PRICES = {
    "gpt-4o": (5.00, 15.00),
    "gpt-4o-2024-08-06": (2.50, 10.00),
    "gpt-4o-2024-05-13": (5.00, 15.00),
    "gpt-4o-mini": (0.150, 0.600),
    "gpt-4o-mini-2024-07-18": (0.150, 0.600),
}

CHARS_PER_TOKEN = 4  # Rough estimate


class PriceEstimator:
    """Estimates per-request cost and keeps a total persisted between runs."""

    def __init__(self, model, cost_file="total_cost.txt"):
        self.logger = logging.getLogger(__name__)
        self.whisper_price_per_minute = WHISPER_PRICE_PER_MINUTE
        self.input_price, self.output_price = MODEL_PRICES.get(model, (0.0, 0.0))
        if model not in MODEL_PRICES:
            self.logger.warning(f"No price information for model '{model}', translation cost counted as 0")
        self.cost_file = cost_file
        self.total_cost = self.load_total_cost()

    def estimate_transcription_cost(self, duration_seconds):
        return duration_seconds / 60.0 * self.whisper_price_per_minute

    def estimate_translation_cost(self, input_tokens, output_tokens):
        input_cost = input_tokens / 1_000_000.0 * self.input_price
        output_cost = output_tokens / 1_000_000.0 * self.output_price
        return input_cost + output_cost

    @staticmethod
    def estimate_tokens(text):
        return len(text or "") // CHARS_PER_TOKEN

    def record(self, duration_seconds, prompt="", response=""):
        """Add the cost of one processed segment and return it."""
        cost = self.estimate_transcription_cost(duration_seconds)
        if prompt or response:
            cost += self.estimate_translation_cost(self.estimate_tokens(prompt), self.estimate_tokens(response))
        self.add_cost(cost)
        self.logger.info(f"Estimated cost for this operation: ${cost:.4f}")
        self.logger.info(f"Total cost so far: ${self.total_cost:.4f}")
        return cost

    def add_cost(self, cost):
        self.total_cost += cost
        self.save_total_cost()

    def load_total_cost(self):
        if not self.cost_file or not os.path.exists(self.cost_file):
            return 0.0
        try:
            with open(self.cost_file, 'r', encoding='utf-8') as f:
                return float(f.read().strip())
        except (OSError, ValueError) as e:
            self.logger.warning(f"Could not read total cost from {self.cost_file}: {e}")
            return 0.0

    def save_total_cost(self):
        if not self.cost_file:
            return
        try:
            with open(self.cost_file, 'w', encoding='utf-8') as f:
                f.write(str(self.total_cost))
        except OSError as e:
            self.logger.error(f"Failed to save total cost: {e}")
