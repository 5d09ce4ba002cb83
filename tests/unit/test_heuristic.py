from __future__ import annotations

from src.services.heuristic import extract_heuristic, section_lines
from src.services.markup import html_to_text

BLOG_PAGE = """
<html>
<head>
  <title>Grandma's Pancakes | Cozy Kitchen</title>
  <script>var tracking = "Ingredients: none";</script>
  <style>.ingredients { color: red; }</style>
</head>
<body>
  <p>Serves 4. Ready in 25 minutes.</p>
  <h2>Ingredients</h2>
  <ul>
    <li>2 cups flour</li>
    <li>1 cup milk</li>
    <li>salt</li>
  </ul>
  <h2>Directions</h2>
  <ol>
    <li>Whisk everything together.</li>
    <li>Cook on a hot griddle.</li>
  </ol>
</body>
</html>
"""


class TestHtmlToText:
    def test_scripts_and_styles_removed(self) -> None:
        text = html_to_text(BLOG_PAGE)
        assert "tracking" not in text
        assert "color: red" not in text

    def test_block_tags_become_lines(self) -> None:
        text = html_to_text("<div>one</div><p>two<br>three</p><span>four</span>")
        assert text.split("\n") == ["one", "two", "three", "four"]

    def test_entities_unescaped_and_spaces_collapsed(self) -> None:
        assert html_to_text("<p>Mac &amp;   cheese</p>") == "Mac & cheese"


class TestSectionLines:
    def test_bullets_and_dashes_split(self) -> None:
        assert section_lines(" • 1 egg • 2 tbsp sugar\n- pinch salt\n") == ["1 egg", "2 tbsp sugar", "pinch salt"]

    def test_header_only_lines_dropped(self) -> None:
        assert section_lines("\nIngredients:\n1 egg\nMethod\n") == ["1 egg"]


class TestExtractHeuristic:
    def test_blog_page(self) -> None:
        recipe = extract_heuristic(BLOG_PAGE, "https://cozy.example.com/pancakes")

        assert recipe is not None
        assert recipe.name == "Grandma's Pancakes | Cozy Kitchen"
        assert [(i.quantity, i.unit, i.name) for i in recipe.ingredients] == [
            ("2", "cups", "flour"),
            ("1", "cup", "milk"),
            (None, None, "salt"),
        ]
        assert recipe.instructions == "Whisk everything together.\nCook on a hot griddle."
        assert recipe.servings == 4
        assert recipe.cooking_time == 25
        assert recipe.source == "url_import"
        assert recipe.source_url == "https://cozy.example.com/pancakes"

    def test_og_title_preferred(self) -> None:
        html = (
            '<html><head><meta property="og:title" content="Best Chili"><title>Site</title></head>'
            "<body><h2>Ingredients</h2><ul><li>1 lb beef</li></ul></body></html>"
        )
        recipe = extract_heuristic(html, "https://example.com/chili")
        assert recipe is not None
        assert recipe.name == "Best Chili"

    def test_h1_then_default_title(self) -> None:
        with_h1 = "<html><body><h1>Lemonade</h1><p>Ingredients</p><p>3 lemons</p></body></html>"
        without = "<html><body><p>Instructions</p><p>Squeeze the lemons.</p></body></html>"

        assert extract_heuristic(with_h1, "https://x").name == "Lemonade"
        assert extract_heuristic(without, "https://x").name == "Untitled Recipe"

    def test_hours_converted(self) -> None:
        html = "<html><body><p>Total 2 hours</p><p>Method</p><p>Braise slowly.</p></body></html>"
        recipe = extract_heuristic(html, "https://x")
        assert recipe is not None
        assert recipe.cooking_time == 120

    def test_yield_servings(self) -> None:
        html = "<html><body><p>Yield: 12</p><p>Ingredients</p><p>1 cup oats</p></body></html>"
        recipe = extract_heuristic(html, "https://x")
        assert recipe is not None
        assert recipe.servings == 12

    def test_reversed_section_order(self) -> None:
        html = (
            "<html><body><h2>Steps</h2><p>Mix it.</p><p>Bake it.</p>"
            "<h2>Ingredients</h2><p>1 cup flour</p></body></html>"
        )
        recipe = extract_heuristic(html, "https://x")
        assert recipe is not None
        assert recipe.instructions == "Mix it.\nBake it."
        assert [i.name for i in recipe.ingredients] == ["flour"]

    def test_title_only_page_keeps_title_and_image(self) -> None:
        html = (
            "<html><head><title>Grandma's Stew</title></head><body><p>A family favourite.</p>"
            '<img src="/icons/logo.png" width="20" height="20">'
            '<img src="/photos/stew.jpg" width="1200" height="800">'
            "</body></html>"
        )

        recipe = extract_heuristic(html, "https://example.com/stew")

        assert recipe is not None
        assert recipe.name == "Grandma's Stew"
        assert recipe.image_url == "https://example.com/photos/stew.jpg"
        assert recipe.ingredients == []
        assert recipe.instructions is None
        assert recipe.source == "url_import"

    def test_meta_image_resolved_against_base_url(self) -> None:
        html = '<html><head><meta property="og:title" content="Stew"><meta property="og:image" content="stew.jpg"></head></html>'
        recipe = extract_heuristic(html, "https://example.com/s", base_url="https://example.com/recipes/stew")
        assert recipe is not None
        assert recipe.image_url == "https://example.com/recipes/stew.jpg"

    def test_no_title_no_sections(self) -> None:
        html = "<html><body><p>We love food.</p></body></html>"
        assert extract_heuristic(html, "https://example.com/about") is None
