from utils import codegen


def test_generated_codes_use_unambiguous_alphabet():
    for _ in range(200):
        code = codegen.generate(8)
        assert len(code) == 8
        assert not set(code) & set("IO01")


def test_formatted_code_shape():
    code = codegen.generate_formatted()
    assert len(code) == 7
    assert code[3] == "-"
    assert codegen.is_well_formed(code)


def test_normalize_and_well_formed():
    assert codegen.normalize("  k7q-2mx ") == "K7Q-2MX"
    assert codegen.normalize(None) == ""
    assert codegen.is_well_formed("k7q-2mx")
    assert codegen.normalize("k7q2mx") == "K7Q-2MX"
    assert codegen.is_well_formed("k7q2mx")
    assert codegen.normalize("k7q2") == "K7Q2"
    assert not codegen.is_well_formed("K7Q2")
    assert not codegen.is_well_formed("K7Q2MXA")
    assert not codegen.is_well_formed("K7Q-2M0")
    assert not codegen.is_well_formed("")
