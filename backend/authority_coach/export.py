from __future__ import annotations
import html
import re
from datetime import datetime
from typing import Optional

from jinja2 import Environment
from markupsafe import Markup

from .errors import InvalidTransition
from .models import Step, WizardSession

EXPORT_MEDIA_TYPE = "application/msword"


_BOLD = re.compile(r"\*\*(.*?)\*\*")
_ITALIC = re.compile(r"\*(.*?)\*")
_LIST_ITEM = re.compile(r"^\s*[\-\*]\s+(.*)$", re.MULTILINE)
_LIST_RUN = re.compile(r"((<li>.*</li>\s*)+)")


def markdown_to_html(text: str) -> Markup:
	"""Just enough markdown for Word: bold, italic, bullet lists and line breaks."""
	out = html.escape(text, quote=False)
	out = _BOLD.sub(r"<strong>\1</strong>", out)
	out = _ITALIC.sub(r"<em>\1</em>", out)
	out = _LIST_ITEM.sub(r"<li>\1</li>", out)
	out = _LIST_RUN.sub(r"<ul>\1</ul>", out)
	out = out.replace("\n", "<br/>")
	return Markup(out)


def export_filename(core_topic: str) -> str:
	return f"Strategy-{re.sub(r'[^a-z0-9]', '-', core_topic, flags=re.IGNORECASE).lower()}.doc"


DOCUMENT_TEMPLATE = """\
<html xmlns:o='urn:schemas-microsoft-com:office:office' xmlns:w='urn:schemas-microsoft-com:office:word' xmlns='http://www.w3.org/TR/REC-html40'>
<head>
<meta charset="utf-8">
<title>Topical Authority Strategy - {{ s.core_topic }}</title>
<style>
body { font-family: 'Calibri', 'Arial', sans-serif; font-size: 11pt; line-height: 1.5; color: #1e293b; max-width: 800px; margin: 0 auto; }
h1 { color: #1e40af; font-size: 24pt; text-align: center; border-bottom: 2px solid #1e40af; padding-bottom: 12px; }
h2 { color: #1e3a8a; font-size: 16pt; margin-top: 32px; background-color: #f1f5f9; padding: 8px; }
h3 { color: #4f46e5; font-size: 13pt; margin-top: 24px; }
a { color: #2563eb; text-decoration: underline; }
.meta-box { border: 1px solid #cbd5e1; padding: 16px; margin-bottom: 24px; background-color: #f8fafc; }
.label { font-size: 9pt; text-transform: uppercase; color: #64748b; font-weight: bold; }
.value { font-size: 12pt; font-weight: bold; color: #0f172a; margin-bottom: 12px; }
.rationale { font-style: italic; color: #475569; border-left: 3px solid #94a3b8; padding-left: 12px; }
.image-container { text-align: center; margin: 20px 0; border: 1px solid #e2e8f0; padding: 10px; }
.source-link { font-size: 9pt; color: #64748b; }
.footer { margin-top: 48px; border-top: 1px solid #e2e8f0; padding-top: 16px; text-align: center; font-size: 9pt; color: #94a3b8; }
</style>
</head>
<body>
<h1>Topical Authority Blueprint</h1>
<p style="text-align: center; color: #64748b;">Generated on {{ generated_on }}</p>

<h2>1. Core Strategy Foundation</h2>
<div class="meta-box">
<div class="label">Core Topic</div>
<div class="value">{{ s.core_topic }}</div>
{%- if s.selected_pillar %}
<div class="label">Selected Pillar</div>
<div class="value">{{ s.selected_pillar.title }}</div>
<div class="rationale">{{ s.selected_pillar.rationale }}</div>
<p>{{ s.selected_pillar.description }}</p>
{%- endif %}
</div>

<h2>2. Content Piece Definition</h2>
<div class="meta-box">
{%- if s.selected_variation %}
<div class="label">Lesson Title</div>
<div class="value">{{ s.selected_variation.title }}</div>
<div class="label">Strategic Angle</div>
<div class="value">{{ s.selected_variation.angle }}</div>
<div class="label">Outcome</div>
<p>{{ s.selected_variation.outcome }}</p>
{%- endif %}
</div>

<h2>3. Detailed Answers &amp; Research</h2>
{%- for item in s.answers %}
<h3>{{ loop.index }}. {{ item.question }}</h3>
{%- if item.image_url %}
<div class="image-container">
<img src="{{ item.image_url }}" width="600" alt="Illustration" />
<p style="font-size: 9pt; color: #94a3b8;">Figure {{ loop.index }}: Generated Concept Illustration</p>
</div>
{%- endif %}
<div>{{ item.answer | markdown }}</div>
{%- if item.sources %}
<p style="font-size: 10pt;"><strong>References:</strong><br/>
{%- for src in item.sources %}
<a href="{{ src.uri }}" class="source-link">{{ src.title }}</a>{% if not loop.last %}<br/>{% endif %}
{%- endfor %}
</p>
{%- endif %}
<hr style="border: 0; border-top: 1px solid #e2e8f0; margin: 24px 0;" />
{%- endfor %}

<h2>4. Additional Audience Questions</h2>
<ul>
{%- for q in unanswered %}
<li>{{ q.question }} <em>({{ q.intent }})</em></li>
{%- endfor %}
</ul>

<div class="footer">Generated by Topical Authority Coach AI</div>
</body>
</html>
"""

_env = Environment(autoescape=True, keep_trailing_newline=True)
_env.filters["markdown"] = markdown_to_html
_template = _env.from_string(DOCUMENT_TEMPLATE)


def render_document(session: WizardSession, generated_at: Optional[datetime] = None) -> str:
	"""Render a finished session as a Word-compatible HTML document.

	Reads the snapshot only. For a given session and ``generated_at`` the output
	is byte-identical across calls.
	"""
	if session.step != Step.SUMMARY:
		raise InvalidTransition("Export is available once the strategy is finished")
	stamp = generated_at or datetime.now()
	return _template.render(
		s=session,
		unanswered=session.unanswered_questions(),
		generated_on=stamp.strftime("%Y-%m-%d"),
	)
