from backoffice.domain.contracts import html_tables


def test_loose_label_tolerates_markup_between_words():
    cell = "<td><strong>PROJETO</strong>&nbsp;<em>contratado</em></td>"
    assert html_tables.cell_contains_label(cell, "PROJETO CONTRATADO")
    assert html_tables.cell_contains_label("<td>Projeto Contratado</td>", "PROJETO CONTRATADO")
    assert not html_tables.cell_contains_label("<td>PROJETO</td>", "PROJETO CONTRATADO")


def test_update_first_row_only_touches_first_match():
    html = "<table><tr><td>A</td></tr><tr><td>A</td></tr></table>"
    out = html_tables.update_first_row_containing_label(html, "A", lambda row: row.replace("A", "B"))
    assert out == "<table><tr><td>B</td></tr><tr><td>A</td></tr></table>"


def test_update_first_row_respects_min_cells_and_first_cell():
    html = (
        "<tr><td>INVESTIMENTO</td></tr>"
        "<tr><td>x</td><td>INVESTIMENTO</td></tr>"
        "<tr><td>INVESTIMENTO</td><td>1</td></tr>"
    )
    out = html_tables.update_first_row_containing_label(
        html, "INVESTIMENTO", lambda row: row.upper().replace("<TD>1", "<TD>2"),
        only_first_cell=True, min_cells=2,
    )
    assert out.endswith("<TR><TD>INVESTIMENTO</TD><TD>2</TD></TR>")
    assert out.startswith("<tr><td>INVESTIMENTO</td></tr><tr><td>x</td>")


def test_failing_updater_keeps_original_row():
    html = "<tr><td>A</td></tr>"

    def _boom(_row):
        raise ValueError("broken")

    assert html_tables.update_first_row_containing_label(html, "A", _boom) == html


def test_map_row_cells_keeps_bytes_between_cells():
    row = '<tr class="x">\n  <td>1</td> <th a="b">2</th>\n</tr>'
    out = html_tables.map_row_cells(row, lambda cell, i, total: cell.replace(str(i + 1), f"{i}/{total}"))
    assert out == '<tr class="x">\n  <td>0/2</td> <th a="b">1/2</th>\n</tr>'


def test_set_cell_checkbox():
    assert html_tables.set_cell_checkbox("<td>Premium ( )</td>", True) == "<td>Premium ( X )</td>"
    assert html_tables.set_cell_checkbox("<td>Startup (X)</td>", False) == "<td>Startup ( )</td>"
    assert html_tables.set_cell_checkbox("<td>Business</td>", True) == "<td>Business ( X )</td>"
    assert html_tables.set_cell_checkbox("<td>Business</td>", False) == "<td>Business</td>"


def test_investment_cell_replaces_existing_amount():
    cell = '<td style="a"><p>R$&nbsp;17.999,00 mensais</p></td>'
    out = html_tables.set_investment_cell_value(cell, "R$ 20.000,00")
    assert out == '<td style="a"><p>R$ 20.000,00 mensais</p></td>'


def test_investment_cell_replaces_bare_amount():
    out = html_tables.set_investment_cell_value("<td>17.999,00</td>", "R$ 20.000,00")
    assert out == "<td>20.000,00</td>"


def test_investment_cell_fills_first_paragraph():
    out = html_tables.set_investment_cell_value('<td><p class="v">a definir</p><p>x</p></td>', "R$ 1,00")
    assert out == '<td><p class="v">R$ 1,00</p><p>x</p></td>'


def test_investment_cell_keeps_content_after_line_break():
    out = html_tables.set_investment_cell_value("<td>a definir<br>mensais</td>", "R$ 1,00")
    assert out == "<td>R$ 1,00<br>mensais</td>"


def test_investment_cell_replaces_body_keeping_suffix():
    assert html_tables.set_investment_cell_value("<td>valor mensais</td>", "R$ 1,00") == "<td>R$ 1,00 mensais</td>"
    assert html_tables.set_investment_cell_value("<td>-</td>", "R$ 1,00") == "<td>R$ 1,00</td>"


def test_due_dates_cell_keeps_bold_label():
    cell = "<td><strong>Data de Vencimento:</strong><br>a definir</td>"
    out = html_tables.set_due_dates_cell_value(cell, "1ª parcela 15/01/26;")
    assert out == "<td><strong>Data de Vencimento:</strong><br>1ª parcela 15/01/26;</td>"


def test_due_dates_cell_without_bold_label_gets_one():
    out = html_tables.set_due_dates_cell_value("<td>Data de Vencimento</td>", "L")
    assert out == "<td><strong>Data de Vencimento:</strong><br>L</td>"


def test_update_due_dates_row_only_changes_label_cell():
    row = "<tr><td>Boleto</td><td>Data de Vencimento: ?</td></tr>"
    out = html_tables.update_due_dates_row(row, "L")
    assert out == "<tr><td>Boleto</td><td><strong>Data de Vencimento:</strong><br>L</td></tr>"
