import pytest

from textwire.core.errors import FrameTooLargeError
from textwire.core.transport.framing import FrameDecoder, encode_frame, strip_delimiter


@pytest.mark.ut
def test_encode_frame_appends_delimiter():
    assert encode_frame("hello") == b"hello<<EOF>>"


@pytest.mark.ut
def test_encode_frame_strips_embedded_delimiter():
    assert encode_frame("a<<EOF>>b<<EOF>>") == b"ab<<EOF>>"


@pytest.mark.ut
def test_strip_delimiter_does_not_leave_rebuilt_delimiter():
    assert strip_delimiter("x<<EO<<EOF>>F>>y") == "xy"


@pytest.mark.ut
def test_encode_frame_uses_encoding():
    assert encode_frame("é", encoding="latin-1") == b"\xe9<<EOF>>"


@pytest.mark.ut
def test_decoder_single_frame():
    decoder = FrameDecoder()

    assert decoder.feed(b"hello<<EOF>>") == ["hello"]
    assert decoder.pending == 0


@pytest.mark.ut
def test_decoder_waits_for_delimiter():
    decoder = FrameDecoder()

    assert decoder.feed(b"hel") == []
    assert decoder.feed(b"lo") == []
    assert decoder.pending == 5
    assert decoder.feed(b"<<EOF>>") == ["hello"]


@pytest.mark.ut
@pytest.mark.parametrize("split", range(1, len(b"hello world<<EOF>>")))
def test_decoder_delimiter_split_across_reads(split):
    data = b"hello world<<EOF>>"
    decoder = FrameDecoder()

    frames = decoder.feed(data[:split]) + decoder.feed(data[split:])

    assert frames == ["hello world"]
    assert decoder.pending == 0


@pytest.mark.ut
def test_decoder_byte_by_byte():
    data = "ça marche, 日本語<<EOF>>".encode()
    decoder = FrameDecoder()

    frames = []
    for i in range(len(data)):
        frames.extend(decoder.feed(data[i:i + 1]))

    assert frames == ["ça marche, 日本語"]


@pytest.mark.ut
def test_decoder_first_occurrence_wins_and_keeps_remainder():
    decoder = FrameDecoder()

    assert decoder.feed(b"one<<EOF>>two<<EOF>>thr") == ["one", "two"]
    assert decoder.pending == 3
    assert decoder.feed(b"ee<<EOF>>") == ["three"]


@pytest.mark.ut
def test_decoder_empty_message():
    decoder = FrameDecoder()

    assert decoder.feed(b"<<EOF>>") == [""]


@pytest.mark.ut
def test_decoder_partial_delimiter_is_not_a_frame():
    decoder = FrameDecoder()

    assert decoder.feed(b"abc<<EOF") == []
    assert decoder.feed(b"x>>") == []
    assert decoder.feed(b"<<EOF>>") == ["abc<<EOFx>>"]


@pytest.mark.ut
def test_decoder_invalid_bytes_are_replaced():
    decoder = FrameDecoder()

    assert decoder.feed(b"\xff<<EOF>>") == ["�"]


@pytest.mark.ut
def test_decoder_custom_delimiter():
    decoder = FrameDecoder(delimiter="\n")

    assert decoder.feed(b"a\nb\n") == ["a", "b"]


@pytest.mark.ut
def test_decoder_rejects_empty_delimiter():
    with pytest.raises(ValueError):
        FrameDecoder(delimiter="")


@pytest.mark.ut
def test_decoder_overflow_raises():
    decoder = FrameDecoder(max_size=10)

    decoder.feed(b"0123456789")
    with pytest.raises(FrameTooLargeError):
        decoder.feed(b"a")


@pytest.mark.ut
def test_decoder_reset_clears_buffer():
    decoder = FrameDecoder()
    decoder.feed(b"partial")

    decoder.reset()

    assert decoder.pending == 0
    assert decoder.feed(b"x<<EOF>>") == ["x"]


@pytest.mark.ut
def test_decoder_utf16_ignores_delimiter_bytes_across_code_units():
    # the encoded characters contain "<<EOF>>" shifted by one byte
    text = "㱁㰀䔀伀䘀㸀㸀Ā"
    decoder = FrameDecoder(encoding="utf-16-le")

    assert decoder.feed(encode_frame(text, encoding="utf-16-le")) == [text]
    assert decoder.pending == 0


@pytest.mark.ut
def test_decoder_utf16_byte_by_byte():
    text = "㱁㰀䔀伀䘀㸀㸀Ā"
    data = encode_frame(text, encoding="utf-16-le") + encode_frame("next", encoding="utf-16-le")
    decoder = FrameDecoder(encoding="utf-16-le")

    frames = []
    for i in range(len(data)):
        frames.extend(decoder.feed(data[i:i + 1]))

    assert frames == [text, "next"]


@pytest.mark.ut
@pytest.mark.parametrize("encoding", ["utf-16-be", "utf-32-le"])
def test_decoder_wide_encodings(encoding):
    decoder = FrameDecoder(encoding=encoding)

    data = encode_frame("héllo", encoding=encoding) + encode_frame("", encoding=encoding)

    assert decoder.feed(data) == ["héllo", ""]
