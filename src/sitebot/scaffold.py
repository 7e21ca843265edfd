"""Static scaffold files committed into build pull requests.

Renders index.html, styles.css and app.js for an approved site option.
The user's answer is escaped before it lands in HTML or JavaScript.
"""

import html
import json
import logging
from typing import Dict

from src.sitebot.options import SiteOption

logger = logging.getLogger(__name__)


SCAFFOLD_ROOT = "sites"


def scaffold_directory(issue_number: int) -> str:
    """Repository directory the scaffold for an issue is written to."""
    return f"{SCAFFOLD_ROOT}/issue-{issue_number}"


def build_scaffold_files(
    option: SiteOption,
    issue_number: int,
    answer: str,
) -> Dict[str, str]:
    """Render the scaffold for an approved option.

    Args:
        option: The approved site option.
        issue_number: Issue the scaffold belongs to.
        answer: Free-text answer to the option's question.

    Returns:
        Mapping of repository path to file content, in commit order.
    """
    directory = scaffold_directory(issue_number)
    files = {
        f"{directory}/index.html": _build_index_html(option, answer),
        f"{directory}/styles.css": _build_styles_css(option),
        f"{directory}/app.js": _build_app_js(option, answer),
    }
    logger.info(
        "Rendered scaffold",
        extra={
            "option": option.slug,
            "issue_number": issue_number,
            "files": list(files),
        },
    )
    return files


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _build_index_html(option: SiteOption, answer: str) -> str:
    heading = html.escape(answer.strip() or option.title)
    body = _BODY_SECTIONS[option.slug].format(heading=heading)
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '  <meta charset="utf-8">\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1">\n'
        f"  <title>{heading}</title>\n"
        '  <link rel="stylesheet" href="styles.css">\n'
        "</head>\n"
        f'<body class="{option.slug}">\n'
        f"{body}"
        '  <script src="app.js"></script>\n'
        "</body>\n"
        "</html>\n"
    )


def _build_styles_css(option: SiteOption) -> str:
    accent = _ACCENTS[option.slug]
    return (
        ":root {\n"
        f"  --accent: {accent};\n"
        "  --text: #1f2328;\n"
        "  --muted: #59636e;\n"
        "}\n"
        "\n"
        "* { box-sizing: border-box; }\n"
        "\n"
        "body {\n"
        "  margin: 0;\n"
        "  font-family: system-ui, -apple-system, sans-serif;\n"
        "  color: var(--text);\n"
        "  line-height: 1.5;\n"
        "}\n"
        "\n"
        "main {\n"
        "  max-width: 960px;\n"
        "  margin: 0 auto;\n"
        "  padding: 3rem 1.5rem;\n"
        "}\n"
        "\n"
        "h1 { font-size: 2.5rem; margin-bottom: 0.5rem; }\n"
        "\n"
        "button, .cta {\n"
        "  background: var(--accent);\n"
        "  color: #fff;\n"
        "  border: none;\n"
        "  border-radius: 6px;\n"
        "  padding: 0.6rem 1.2rem;\n"
        "  cursor: pointer;\n"
        "}\n"
        "\n"
        ".grid {\n"
        "  display: grid;\n"
        "  grid-template-columns: repeat(auto-fill, minmax(220px, 1fr));\n"
        "  gap: 1rem;\n"
        "}\n"
        "\n"
        ".card {\n"
        "  border: 1px solid #d1d9e0;\n"
        "  border-radius: 8px;\n"
        "  padding: 1rem;\n"
        "}\n"
        "\n"
        ".done { text-decoration: line-through; color: var(--muted); }\n"
    )


def _build_app_js(option: SiteOption, answer: str) -> str:
    # json.dumps yields a valid JS string literal; "</" is split so the
    # value cannot close a surrounding script tag.
    title = json.dumps(answer.strip() or option.title).replace("</", "<\\/")
    return f"const SITE_TITLE = {title};\n\n" + _SCRIPTS[option.slug]


_ACCENTS = {
    "landing-page": "#0969da",
    "portfolio": "#8250df",
    "todo-app": "#1a7f37",
}


_BODY_SECTIONS = {
    "landing-page": (
        "  <main>\n"
        '    <section class="hero">\n'
        "      <h1>{heading}</h1>\n"
        "      <p>Tell visitors what you do in one sentence.</p>\n"
        '      <a class="cta" id="cta" href="#signup">Get started</a>\n'
        "    </section>\n"
        '    <section id="signup">\n'
        "      <h2>Stay in touch</h2>\n"
        '      <form id="signup-form">\n'
        '        <input type="email" name="email" placeholder="you@example.com" required>\n'
        '        <button type="submit">Sign up</button>\n'
        "      </form>\n"
        '      <p id="signup-status"></p>\n'
        "    </section>\n"
        "  </main>\n"
    ),
    "portfolio": (
        "  <main>\n"
        "    <header>\n"
        "      <h1>{heading}</h1>\n"
        "    </header>\n"
        '    <section class="grid" id="projects"></section>\n'
        "  </main>\n"
    ),
    "todo-app": (
        "  <main>\n"
        "    <h1>{heading}</h1>\n"
        '    <form id="todo-form">\n'
        '      <input id="todo-input" placeholder="What needs doing?" required>\n'
        '      <button type="submit">Add</button>\n'
        "    </form>\n"
        '    <ul id="todo-list"></ul>\n'
        "  </main>\n"
    ),
}


_SCRIPTS = {
    "landing-page": (
        'document.getElementById("signup-form").addEventListener("submit", (event) => {\n'
        "  event.preventDefault();\n"
        '  document.getElementById("signup-status").textContent =\n'
        '    "Thanks for signing up to " + SITE_TITLE + "!";\n'
        "  event.target.reset();\n"
        "});\n"
    ),
    "portfolio": (
        "const PROJECTS = [\n"
        '  { name: "Project one", summary: "What it is and why it matters." },\n'
        '  { name: "Project two", summary: "What it is and why it matters." },\n'
        '  { name: "Project three", summary: "What it is and why it matters." },\n'
        "];\n"
        "\n"
        'const grid = document.getElementById("projects");\n'
        "for (const project of PROJECTS) {\n"
        '  const card = document.createElement("article");\n'
        '  card.className = "card";\n'
        '  const name = document.createElement("h2");\n'
        "  name.textContent = project.name;\n"
        '  const summary = document.createElement("p");\n'
        "  summary.textContent = project.summary;\n"
        "  card.append(name, summary);\n"
        "  grid.append(card);\n"
        "}\n"
    ),
    "todo-app": (
        'const STORAGE_KEY = "todos:" + SITE_TITLE;\n'
        'const form = document.getElementById("todo-form");\n'
        'const input = document.getElementById("todo-input");\n'
        'const list = document.getElementById("todo-list");\n'
        "\n"
        'let todos = JSON.parse(localStorage.getItem(STORAGE_KEY) || "[]");\n'
        "\n"
        "function save() {\n"
        "  localStorage.setItem(STORAGE_KEY, JSON.stringify(todos));\n"
        "}\n"
        "\n"
        "function render() {\n"
        '  list.innerHTML = "";\n'
        "  todos.forEach((todo, index) => {\n"
        '    const item = document.createElement("li");\n'
        "    item.textContent = todo.text;\n"
        '    item.className = todo.done ? "done" : "";\n'
        '    item.addEventListener("click", () => {\n'
        "      todos[index].done = !todos[index].done;\n"
        "      save();\n"
        "      render();\n"
        "    });\n"
        "    list.append(item);\n"
        "  });\n"
        "}\n"
        "\n"
        'form.addEventListener("submit", (event) => {\n'
        "  event.preventDefault();\n"
        "  todos.push({ text: input.value.trim(), done: false });\n"
        '  input.value = "";\n'
        "  save();\n"
        "  render();\n"
        "});\n"
        "\n"
        "render();\n"
    ),
}
