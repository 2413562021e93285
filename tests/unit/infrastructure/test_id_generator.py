"""Unit tests for IdGenerator."""

import re
from unittest.mock import patch

import pytest
from fuel.domain.models import EntityKind
from fuel.infrastructure.id_generator import IdGenerator


class TestIdGenerator:
    def test_format_per_kind(self) -> None:
        generator = IdGenerator()

        assert re.fullmatch(r"f-[0-9a-f]{6}", generator.for_kind(EntityKind.TASK))
        assert re.fullmatch(r"e-[0-9a-f]{6}", generator.for_kind(EntityKind.EPIC))
        assert re.fullmatch(r"b-[0-9a-f]{6}", generator.for_kind(EntityKind.BACKLOG))
        assert re.fullmatch(r"run-[0-9a-f]{6}", generator.for_run())

    @pytest.mark.parametrize("length", [4, 7, 12])
    def test_hash_length(self, length: int) -> None:
        task_id = IdGenerator(hash_length=length).generate("f")
        assert len(task_id) == len("f-") + length

    def test_retries_on_collision(self) -> None:
        generator = IdGenerator()

        with patch(
            "fuel.infrastructure.id_generator.secrets.token_hex",
            side_effect=["aaaaaa", "aaaaaa", "bbbbbb"],
        ):
            task_id = generator.generate("f", existing={"f-aaaaaa"})

        assert task_id == "f-bbbbbb"

    def test_gives_up_after_max_attempts(self) -> None:
        generator = IdGenerator(max_attempts=3)

        with patch(
            "fuel.infrastructure.id_generator.secrets.token_hex", return_value="aaaaaa"
        ):
            with pytest.raises(RuntimeError, match="after 3 attempts"):
                generator.generate("f", existing={"f-aaaaaa"})
