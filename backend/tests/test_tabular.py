from app.services.tabular import read_header, read_records, write_records


def test_read_records_strips_bom_and_fills_missing_values(tmp_path):
    path = tmp_path / "input.csv"
    path.write_bytes(
        "\ufeffNom établissement,Adresse,Ville\n"
        "Cabinet Dupont,,Nantes\nBrasserie\n".encode("utf-8")
    )

    records = read_records(path)

    assert records == [
        {"Nom établissement": "Cabinet Dupont", "Adresse": "", "Ville": "Nantes"},
        {"Nom établissement": "Brasserie", "Adresse": "", "Ville": ""},
    ]


def test_write_records_uses_union_of_columns(tmp_path):
    path = tmp_path / "out" / "output.csv"
    write_records(
        path,
        [
            {"Nom établissement": "A", "Ville": "Lyon"},
            {"Nom établissement": "B", "Code postal": "69006"},
        ],
    )

    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines == [
        "Nom établissement,Ville,Code postal",
        "A,Lyon,",
        "B,,69006",
    ]


def test_read_header_keeps_file_order(tmp_path):
    path = tmp_path / "input.csv"
    path.write_bytes("\ufeffVille,Nom établissement\n".encode("utf-8"))

    assert read_header(path) == ["Ville", "Nom établissement"]


def test_write_records_puts_given_fieldnames_first(tmp_path):
    path = tmp_path / "output.csv"

    write_records(
        path,
        [{"Nom établissement": "A", "Extra": "x"}],
        ["Ville", "Nom établissement"],
    )

    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines == ["Ville,Nom établissement,Extra", ",A,x"]


def test_write_records_writes_header_only_file_for_empty_input(tmp_path):
    path = tmp_path / "output.csv"

    write_records(path, [], ["Nom établissement", "Adresse"])

    assert path.read_text(encoding="utf-8").splitlines() == [
        "Nom établissement,Adresse"
    ]
