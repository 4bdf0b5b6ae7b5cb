"""render_scout.crawler: фронтир, загрузка страниц, модели и цикл обхода."""
