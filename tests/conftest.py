import pytest
from bs4 import BeautifulSoup

from linuxfr_epub.core.settings import Settings

LONG_SEGMENT = "68747470733a2f2f696d672e6578616d706c652e6f72672f" * 2
LONG_IMAGE = f"/img/{LONG_SEGMENT}/capture.jpg"

ARTICLE_PAGE = f"""<!DOCTYPE html>
<html lang="fr">
<head>
  <title>Sortie de Linux 6.8 - LinuxFr.org</title>
  <style>#phare {{ background-image: url('/images/sections/1.png'); }}</style>
</head>
<body>
<div id="contents">
<article class="node" id="news-42" itemscope="itemscope" itemtype="http://schema.org/Article">
  <header>
    <h1><a class="topic" href="/sections/linux">Linux</a><a href="/news/sortie-de-linux-6-8" itemprop="name">Sortie de Linux 6.8</a></h1>
    <div class="meta">Posté par <a rel="author" href="/users/alice">alice</a>
      <time class="updated" datetime="2024-03-05T10:30:00+01:00">le 05/03/24 à 10:30</time>
      <span class="datePourCss">05/03/24</span>
      <span class="edited_by">Modéré par <a href="/users/bob">bob</a> et <a href="/users/carol">carol</a>.</span>
    </div>
  </header>
  <div class="content" itemprop="articleBody">
    <p>Voir <a href="/news/la-precedente">la précédente</a>, <a href="//example.org/x">ailleurs</a> et <a href="https://kernel.org/">kernel.org</a>.<br></p>
    <img src="/images/logo.png" alt="logo">
    <img src="https://linuxfr.org/images/logo.png" alt="encore">
    <img src="data:image/gif;base64,R0lGODlhAQABAAAAACw=" alt="pixel">
    <img src="{LONG_IMAGE}" alt="capture">
    <pre><code>  indenté
    code</code></pre>
  </div>
  <div class="actions"><a href="/news/sortie-de-linux-6-8/edit">Modifier</a></div>
  <figure class="score">12</figure>
  <meta itemprop="interactionCount" content="UserComments:3">
</article>
<div id="comments">
  <ul class="threads">
    <li class="comment" id="comment-1"><h2>Premier</h2><a class="anchor" href="#comment-1">#</a><a class="parent" href="#news-42">^</a>
      <div class="content"><p>Bravo <img src="/images/smiley.png" alt=":)"></p></div>
      <ul><li class="comment" id="comment-3"><h2>Réponse</h2></li></ul>
    </li>
    <li class="comment" id="comment-2"><h2>Second</h2><div class="content"><img src="/images/huge.png" alt="huge"></div></li>
  </ul>
</div>
</div>
</body>
</html>
"""

@pytest.fixture
def settings():
    return Settings(image_timeout=5, image_delivery_window=1, image_max_size=1024)

@pytest.fixture
def page_soup():
    soup = BeautifulSoup(ARTICLE_PAGE, 'lxml')
    yield soup
    soup.decompose()

@pytest.fixture
def article(page_soup):
    return page_soup.select_one("#contents article")
