"""
Starter files for new projects, keyed by project language.
"""

from typing import Dict, List

INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>New Project</title>
  <link rel="stylesheet" href="styles.css">
</head>
<body>
  <h1>Hello, World!</h1>
  <script src="script.js"></script>
</body>
</html>"""

STYLES_CSS = """* {
  margin: 0;
  padding: 0;
  box-sizing: border-box;
}

body {
  font-family: system-ui, -apple-system, sans-serif;
  padding: 2rem;
}

h1 {
  color: #333;
}"""

SCRIPT_JS = """// Your JavaScript code here
console.log('Hello, World!');"""

INDEX_TS = """// TypeScript entry point
const greeting: string = 'Hello, TypeScript!';
console.log(greeting);"""

MAIN_PY = '''# Python entry point
def main():
    print("Hello, Python!")

if __name__ == "__main__":
    main()'''

_WEB_STARTER = [
    {"name": "index.html", "content": INDEX_HTML},
    {"name": "styles.css", "content": STYLES_CSS},
    {"name": "script.js", "content": SCRIPT_JS},
]

STARTER_FILES: Dict[str, List[Dict[str, str]]] = {
    "javascript": _WEB_STARTER,
    "html": _WEB_STARTER,
    "typescript": [{"name": "index.ts", "content": INDEX_TS}],
    "python": [{"name": "main.py", "content": MAIN_PY}],
}


def starter_files(language: str) -> List[Dict[str, str]]:
    """Files created in the root of a new project; empty for unknown languages."""
    return STARTER_FILES.get(language.lower(), [])
