"""Built-in starter workspaces.

Loaded on first start, when the stored state is corrupt, or on explicit
request from the template gallery.
"""

from __future__ import annotations

from runvault.ide_runtime.models.enums import TemplateKind
from runvault.ide_runtime.models.workspace import FileRecord

_HTML_INDEX = """\
<!DOCTYPE html>
<html>
<head>
  <title>RunVault Preview</title>
<style>
  body { background: #020408; color: #6366f1; display: flex; flex-direction: column;
         justify-content: center; align-items: center; height: 100vh; margin: 0;
         font-family: sans-serif; }
  h1 { font-weight: 900; letter-spacing: -2px; font-size: 4rem; text-transform: uppercase; margin: 0; }
  p { font-size: 0.8rem; text-transform: uppercase; letter-spacing: 4px; opacity: 0.5; }
</style>
</head>
<body>
  <h1>RunVault</h1>
  <p>Workspace ready</p>
</body>
</html>"""

_PYTHON_MAIN = """\
print("Workspace active")


def greet():
    print("Hello from the Python kernel")


if __name__ == "__main__":
    greet()"""

_REACT_APP = """\
import React from "react";

export const App = () => {
  return (
    <div className="workspace-ui">
      <h1>RunVault Workspace</h1>
      <p>Environment initialized.</p>
    </div>
  );
};"""


def starter_files(kind: TemplateKind | str = TemplateKind.HTML) -> list[FileRecord]:
    """Return fresh records for a starter template.  Unknown kinds fall back to HTML."""
    try:
        kind = TemplateKind(kind)
    except ValueError:
        kind = TemplateKind.HTML

    match kind:
        case TemplateKind.PYTHON:
            return [FileRecord(id="py-main", name="main.py", language="python", content=_PYTHON_MAIN)]
        case TemplateKind.REACT:
            return [FileRecord(id="tsx-main", name="App.tsx", language="typescript", content=_REACT_APP)]
        case _:
            return [FileRecord(id="web-index", name="index.html", language="html", content=_HTML_INDEX)]
