"""Fixed parts of every EPUB: container, navigation, stylesheet, page frame and the OPF."""
from html import escape
from typing import List

from ..models import Document, ManifestItem

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'
PACKAGE_PATH = "EPUB/package.opf"
STYLESHEET_HREF = "linuxfr.css"
CONTENT_HREF = "content.xhtml"

CONTAINER = XML_DECLARATION + f"""
<container xmlns="urn:oasis:names:tc:opendocument:xmlns:container" version="1.0">
  <rootfiles>
    <rootfile full-path="{PACKAGE_PATH}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""

NAV = XML_DECLARATION + f"""
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops" lang="fr" xml:lang="fr">
  <head>
    <title>LinuxFr.org</title>
    <meta charset="utf-8" />
  </head>
  <body>
    <section class="frontmatter TableOfContents" epub:type="frontmatter toc">
      <h1>Sommaire</h1>
      <nav epub:type="toc" id="toc">
        <ol>
          <li><a href="{CONTENT_HREF}">Aller au contenu</a></li>
        </ol>
      </nav>
    </section>
  </body>
</html>"""

STYLESHEET = """
body { font-family: sans-serif; }
img { display: block; margin: 0 auto; max-width: 100%; border: none; }
blockquote { border-left: 3px solid #4C575F; padding-left: 5px; margin: 10px 0 10px 10px; }
code { white-space: pre-wrap; border: 1px solid #E9E6E4; border-radius: 4px; padding: 1px 4px; }
pre code { display: block; border-width: 0 0 0 3px; border-color: #4C575F; }
article, ul.threads > li.comment { display: block; padding: 10px; border-radius: 6px; border: 1px solid #93877B; min-height: 70px; line-height: 1.4em; text-align: justify; }
header .topic:after { content: " :"; }
article .image { float: left; margin: 10px; }
article h1 { border-left: solid 6px #4C575F; padding-left: 13px; font-size: 1.5em; margin-top: 7px; margin-bottom: 8px; }
article h1 a { color: inherit; text-decoration: none; }
.meta { color: #93877B; }
.meta a { color: inherit; font-weight: bold; text-decoration: none; }
.tags ul { display: inline; }
.tags ul li { display: inline; padding: 0; list-style: none; }
.tags ul li:after { content: ", "; }
.tags ul li:last-child:after { content: ""; }
ul.poll .result { background: #F1ABC5; font-size: x-small; border-top: 1px solid #4C575F; border-bottom: 1px solid #4C575F; }
ul.threads li { list-style: none; }
li.comment > h2 { background: #E9E6E4; clear: right; }
li.comment > h2 a { color: inherit; text-decoration: none; margin-bottom: 0; }
li.comment .meta { margin-top: 5px; }
li.comment .avatar { float: right; margin: 0 5px 5px 10px; }
li.comment .content { border-left: 1px solid #93877B; padding-left: 5px; }
.deleted { border-left: 3px solid red; font-style: italic; }
.signature { color: #999; font-size: 11px; }
.signature:before { white-space: pre; content: "-- \\a"; }
"""

HEADER_HTML = XML_DECLARATION + f"""
<html xmlns="http://www.w3.org/1999/xhtml" lang="fr" xml:lang="fr">
  <head>
    <title>LinuxFr.org</title>
    <meta charset="utf-8" />
    <link rel="stylesheet" type="text/css" href="{STYLESHEET_HREF}" />
  </head>
  <body>"""

FOOTER_HTML = "</body></html>"

def wrap_page(body: str) -> str:
    return f"{HEADER_HTML}{body}{FOOTER_HTML}"

def _item(item: ManifestItem, properties: str = "") -> str:
    props = f' properties="{properties}"' if properties else ""
    return f'<item id="{escape(item.id)}" href="{escape(item.href)}" media-type="{escape(item.media_type)}"{props}/>'

def render_package(document: Document, cover: ManifestItem = None) -> str:
    """The OPF package document: metadata, manifest and spine for `document`."""
    meta: List[str] = [
        '<dc:language id="pub-language">fr</dc:language>',
        f'<dc:identifier id="pub-identifier">{escape(document.identifier)}</dc:identifier>',
        f'<dc:date>{escape(document.date)}</dc:date>',
        f'<meta property="dcterms:modified">{escape(document.date)}</meta>',
    ]
    if document.title:
        meta.append(f'<dc:title id="pub-title">{escape(document.title)}</dc:title>')
    if document.subject:
        meta.append(f'<dc:subject>{escape(document.subject)}</dc:subject>')
    if document.creator:
        meta.append(f'<dc:creator id="pub-creator">{escape(document.creator)}</dc:creator>')
    for contributor in document.contributors:
        meta.append(f'<dc:contributor>{escape(contributor)}</dc:contributor>')
    if cover:
        meta.append(f'<meta name="cover" content="{escape(cover.id)}"/>')

    manifest = [
        '<item id="nav" href="nav.xhtml" media-type="application/xhtml+xml" properties="nav"/>',
        f'<item id="css" href="{STYLESHEET_HREF}" media-type="text/css"/>',
    ]
    if cover:
        manifest.append(_item(cover, "cover-image"))
    manifest.extend(_item(item) for item in document.items)
    spine = [f'<itemref idref="{escape(item.id)}"/>' for item in document.items if item.spine]

    indent = "\n\t\t"
    return XML_DECLARATION + f"""
<package xmlns="http://www.idpf.org/2007/opf" unique-identifier="pub-identifier" xml:lang="fr" version="3.0">
	<metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
		{indent.join(meta)}
	</metadata>
	<manifest>
		{indent.join(manifest)}
	</manifest>
	<spine>
		{indent.join(spine)}
	</spine>
</package>"""
