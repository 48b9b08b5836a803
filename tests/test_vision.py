# -*- coding: utf-8 -*-

from __future__ import annotations

import json
import unittest
from unittest import mock

import httpx

from milkyway.config import settings
from milkyway.records.models import IconId
from milkyway.vision.models import DrinkGuess
from milkyway.vision.service import (
    VisionNotConfigured,
    guess_icon,
    normalize_guess,
    parse_model_output,
    prefill_fields,
    recognize_drink,
    split_data_url,
)

_RealClient = httpx.Client


def _completion(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def _client_with(handler):
    def factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return _RealClient(*args, **kwargs)

    return factory


class TestVisionParsing(unittest.TestCase):
    def test_json_wrapped_in_fences_and_prose(self) -> None:
        content = '识别结果如下：\n```json\n{"brand": "喜茶", "name": "多肉葡萄", "calories": "320千卡",}\n```'
        parsed = parse_model_output(content)
        self.assertEqual(parsed["brand"], "喜茶")
        self.assertEqual(parsed["calories"], "320千卡")

    def test_unparsable_output_raises(self) -> None:
        with self.assertRaises(ValueError):
            parse_model_output("sorry, I cannot read this photo")

    def test_normalize_guess_coerces_shapes(self) -> None:
        guess = normalize_guess(
            {
                "brand": None,
                "name": " 杨枝甘露 ",
                "ingredients": ["芒果", "西柚", ""],
                "price": 19,
                "calories": "约 280 kcal",
                "unexpected": "ignored",
            }
        )
        self.assertEqual(guess.brand, "")
        self.assertEqual(guess.name, "杨枝甘露")
        self.assertEqual(guess.ingredients, "芒果, 西柚")
        self.assertEqual(guess.price, "19")
        self.assertEqual(guess.calories, 280)
        self.assertEqual(normalize_guess({"calories": -5}).calories, 0)

    def test_split_data_url(self) -> None:
        self.assertEqual(split_data_url("data:image/png;base64,AAAA"), ("image/png", "AAAA"))
        self.assertEqual(split_data_url("AAAA"), ("image/jpeg", "AAAA"))


class TestPrefill(unittest.TestCase):
    def test_guess_icon_keywords(self) -> None:
        self.assertEqual(guess_icon("生椰拿铁", "瑞幸"), IconId.coffee)
        self.assertEqual(guess_icon("抹茶奶绿", ""), IconId.matcha)
        self.assertEqual(guess_icon("多肉葡萄", "喜茶"), IconId.fruit)
        self.assertEqual(guess_icon("鲜奶麻薯", ""), IconId.milk)
        self.assertEqual(guess_icon("招牌奶茶", "一点点"), IconId.pearl)

    def test_prefill_skips_empty_values(self) -> None:
        guess = DrinkGuess(brand="喜茶", name="多肉葡萄", sugar="少糖", ice="", calories=0)
        self.assertEqual(
            prefill_fields(guess),
            {"name": "多肉葡萄", "brand": "喜茶", "sugarIce": "少糖", "iconId": "fruit"},
        )

    def test_prefill_joins_sugar_and_ice(self) -> None:
        guess = DrinkGuess(name="招牌奶茶", sugar="半糖", ice="少冰", price="15", calories=350)
        fields = prefill_fields(guess)
        self.assertEqual(fields["sugarIce"], "半糖 / 少冰")
        self.assertEqual(fields["calories"], 350)
        self.assertEqual(fields["price"], "15")
        self.assertEqual(fields["iconId"], "pearl")

    def test_missing_api_key(self) -> None:
        with mock.patch.object(settings, "qwen_api_key", None):
            with self.assertRaises(VisionNotConfigured):
                recognize_drink(image_base64="AAAA")


class TestRecognizeDrink(unittest.TestCase):
    def setUp(self) -> None:
        self.requests = []
        patcher = mock.patch.object(settings, "qwen_api_key", "test-key")
        patcher.start()
        self.addCleanup(patcher.stop)

    def _recognize(self, response: httpx.Response):
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return response

        with mock.patch("milkyway.vision.service.httpx.Client", _client_with(handler)):
            return recognize_drink(image_base64="data:image/png;base64,AAAA")

    def test_completion_is_parsed_into_a_guess(self) -> None:
        content = '```json\n{"brand": "喜茶", "name": "多肉葡萄", "sugar": "少糖", "calories": 320}\n```'
        guess, model_name = self._recognize(_completion(content))

        self.assertEqual(guess.brand, "喜茶")
        self.assertEqual(guess.name, "多肉葡萄")
        self.assertEqual(guess.calories, 320)
        self.assertEqual(model_name, settings.qwen_vl_model)

        request = self.requests[0]
        self.assertTrue(request.url.path.endswith("/chat/completions"))
        self.assertEqual(request.headers["Authorization"], "Bearer test-key")
        body = json.loads(request.content)
        image_part = body["messages"][0]["content"][0]
        self.assertEqual(image_part["image_url"]["url"], "data:image/png;base64,AAAA")

    def test_prose_only_output_degrades_to_empty_guess(self) -> None:
        with self.assertLogs("milkyway.vision.service", level="WARNING"):
            guess, _ = self._recognize(_completion("这张图片里没有饮品。"))
        self.assertEqual(guess, DrinkGuess())

    def test_upstream_error_raises_http_error(self) -> None:
        with self.assertRaises(httpx.HTTPStatusError):
            self._recognize(httpx.Response(500, json={"error": "overloaded"}))


if __name__ == "__main__":
    unittest.main()
