"""Word-recall verification challenge for freshly generated seed phrases."""

import random
from collections.abc import Iterable

from vaultkeeper.models import VerificationChallenge, WordSelection

DEFAULT_SAMPLE_SIZE = 3


class ChallengeGenerator:
    """Builds and checks multiple-choice recall quizzes.

    Decoys come from cheap lexical perturbation of the true word and are
    not guaranteed to be distinct from it or from each other. The quiz
    is a recall aid, not a security boundary.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        """Initialize the generator.

        Args:
            rng: Random source. Defaults to the OS CSPRNG.
        """
        self._rng = rng or random.SystemRandom()

    @staticmethod
    def decoys_for(word: str) -> list[str]:
        """Return lexical look-alikes for a word."""
        return [
            word[1:],
            word + "s",
            word[:1] + word[2:],
        ]

    def build(
        self, phrase: str, sample_size: int = DEFAULT_SAMPLE_SIZE
    ) -> VerificationChallenge:
        """Build a challenge over ``sample_size`` random word positions.

        Args:
            phrase: Seed phrase to quiz on.
            sample_size: Number of distinct positions to ask for.

        Returns:
            VerificationChallenge with positions in selection order and one
            shuffled option group per position.

        Raises:
            ValueError: If sample_size is not between 1 and the word count.
        """
        words = phrase.split()
        if not 1 <= sample_size <= len(words):
            raise ValueError(
                f"sample_size must be between 1 and {len(words)}, got {sample_size}"
            )

        indices = self._rng.sample(range(len(words)), sample_size)

        options: list[str] = []
        for index in indices:
            group = self.decoys_for(words[index]) + [words[index]]
            self._rng.shuffle(group)
            options.extend(group)

        return VerificationChallenge(indices=indices, options=options)

    @staticmethod
    def verify(phrase: str, selections: Iterable[WordSelection]) -> bool:
        """Check submitted answers, all-or-nothing.

        Args:
            phrase: The seed phrase being verified.
            selections: Submitted (index, word) answers.

        Returns:
            True only if there is at least one selection and every one
            matches the phrase exactly at its index.
        """
        words = phrase.split()
        selections = list(selections)
        if not selections:
            return False
        return all(
            s.index < len(words) and words[s.index] == s.word for s in selections
        )
