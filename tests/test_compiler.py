import pytest

from rryth.core.errors import EmptyPromptError, ForbiddenTermError
from rryth.prompting.compiler import compile_prompt, extract_image
from rryth.safety.forbidden import parse_forbidden


def test_extract_image_takes_first_reference_and_strips_all_tags():
    text, url = extract_image('cat <image url="https://a/1.png"/> dog <img src="https://a/2.png">')
    assert url == "https://a/1.png"
    assert "<" not in text
    assert text.split() == ["cat", "dog"]


def test_splits_positive_and_negative_terms():
    compiled = compile_prompt("1girl， Sunset,  sky negative prompt: bad hands, blurry")
    assert compiled.positive_terms == ("1girl", "sunset", "sky")
    assert compiled.negative_terms == ("bad hands", "blurry")
    assert compiled.prompt == "1girl, sunset, sky"
    assert compiled.negative_prompt == "bad hands, blurry"


def test_inline_undesired_flag_and_option_merge():
    compiled = compile_prompt("cat, -u lowres", undesired="blurry, lowres")
    assert compiled.positive_terms == ("cat",)
    assert compiled.negative_terms == ("lowres", "blurry")


def test_defaults_prepended_unless_override():
    compiled = compile_prompt("cat", base_prompt="masterpiece", negative_prompt="lowres")
    assert compiled.positive_terms == ("masterpiece", "cat")
    assert compiled.negative_terms == ("lowres",)

    overridden = compile_prompt("cat", override=True, base_prompt="masterpiece", negative_prompt="lowres")
    assert overridden.positive_terms == ("cat",)
    assert overridden.negative_terms == ()


def test_empty_prompt_without_default():
    with pytest.raises(EmptyPromptError):
        compile_prompt('  <image url="https://a/1.png"/> ')


def test_image_only_with_default_prompt():
    compiled = compile_prompt('<image url="https://a/1.png"/>', base_prompt="masterpiece")
    assert compiled.image_url == "https://a/1.png"
    assert compiled.positive_terms == ("masterpiece",)


def test_strict_rule_rejects_request():
    with pytest.raises(ForbiddenTermError) as info:
        compile_prompt("cat, nsfw art", parse_forbidden("nsfw!"))
    assert info.value.locale_key == "forbidden-word"
    assert info.value.term == "nsfw art"


def test_loose_rule_strips_only_matching_term():
    compiled = compile_prompt("cat, gory scene, dog", parse_forbidden("gor"))
    assert compiled.positive_terms == ("cat", "dog")


def test_loose_rule_stripping_everything_is_empty():
    with pytest.raises(EmptyPromptError):
        compile_prompt("gore", parse_forbidden("gore"))


def test_forbidden_rules_do_not_touch_defaults():
    compiled = compile_prompt("cat", parse_forbidden("masterpiece"), base_prompt="masterpiece")
    assert compiled.positive_terms == ("masterpiece", "cat")
