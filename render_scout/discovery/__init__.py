"""render_scout.discovery: поиск клиентских маршрутов SPA и виртуальных представлений."""
