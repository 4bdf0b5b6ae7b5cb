"""render_scout.render: проход браузером (Playwright) и разметка намерений элементов."""
